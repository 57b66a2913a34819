from app.opspanel import create_app

app = create_app()
