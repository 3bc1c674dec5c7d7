"""MalleableEngine CLI — typer command line."""
