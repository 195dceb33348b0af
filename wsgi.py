from moneyflow import create_app

app = create_app()
