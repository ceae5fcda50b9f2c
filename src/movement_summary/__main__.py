from movement_summary.cli import app

app()
