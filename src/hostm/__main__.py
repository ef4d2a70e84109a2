from hostm.cli import app

app(prog_name="hostm")
