from app.community import create_app

app = create_app()
