"""Allow the package to be run with python -m dacpactool
"""
from .cli import command_line

if __name__ == "__main__":
    command_line()
