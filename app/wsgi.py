from app.ocl import create_app

app = create_app()
