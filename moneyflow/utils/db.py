# moneyflow/utils/db.py
import time

from sqlalchemy.exc import OperationalError


def run_with_retry(session, work, retries=5, base_delay=0.2):
    """Run ``work()`` and commit; replay the whole unit when SQLite reports a lock.

    A failed commit leaves the session rolled back, so the work itself has to be
    re-run rather than the commit alone.
    """
    for i in range(retries):
        try:
            result = work()
            session.commit()
            return result
        except OperationalError as e:
            session.rollback()
            # SQLite: database is locked
            if "database is locked" in str(e).lower() and i < retries - 1:
                time.sleep(base_delay * (2 ** i))  # 0.2s, 0.4s, 0.8s, ...
                continue
            raise
