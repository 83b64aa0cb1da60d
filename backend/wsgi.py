from medistock import create_app

app = create_app()
