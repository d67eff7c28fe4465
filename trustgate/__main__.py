from trustgate.cli import app

app()
