from feeddigest import create_app

app = create_app()
