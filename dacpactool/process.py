"""Run the external tools (dotnet, sqlpackage) the jobs hand off to
"""
import os
import logging
import subprocess

class x_process(Exception): pass

def run(program, args, cwd=None, logger=logging):
    """Run program with args, letting its output through to the console

    Raises x_process if the program exits with anything other than 0
    """
    cmd = [program] + list(args)
    cwd = cwd or os.getcwd()
    logger.info("RUN: %s (in %s)", " ".join(cmd), cwd)
    try:
        res = subprocess.run(cmd, cwd=cwd)
    except FileNotFoundError:
        raise x_process("Unable to find %s; is it installed and on the PATH?" % program)
    if res.returncode != 0:
        raise x_process("Process exited with code %d" % res.returncode)
