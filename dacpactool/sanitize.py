"""Strip the environment-specific boilerplate from a generated deployment script

A deployment script generated by sqlpackage is written to be run by sqlcmd
against one particular server. Before it can be replayed from inside a
migration the head of the script has to go:

* the comment block describing the deployment
* the SET statements for the session (ANSI_NULLS etc.)
* the :setvar / :on error sqlcmd directives
* the block which checks that sqlcmd mode is enabled
* the USE [$(DatabaseName)] and PRINT statements

Each rule is anchored to the start of what's left of the script: the rules
are applied repeatedly until none of them matches, so nothing is removed
from the middle of the actual DDL.
"""
import logging
import re

GO = r"GO(?:\r?\n)+"
CAN_START_WITH_GO = r"(?:%s)?" % GO

R_COMMENTS = re.compile(CAN_START_WITH_GO + r"/\*[\s\S]*?\*/(?:\r?\n)*")
R_SET = re.compile(CAN_START_WITH_GO + r"SET\b[\s\S]*?;(?:\r?\n)*")
R_CMD_VARIABLES = re.compile(GO + r"(?::.*(?:\r?\n)+)+(?:\r?\n)*")
R_CMD_CHECK = re.compile(r":setvar\s+__IsSqlCmdEnabled[\s\S]*?GO[\s\S]*?END(?:\r?\n)*")
R_USE_OR_PRINT = re.compile(GO + r"(?:USE|PRINT).*?;(?:\r?\n)*")

RULES = [
    ("comments", R_COMMENTS),
    ("session settings", R_SET),
    ("sqlcmd directives", R_CMD_VARIABLES),
    ("sqlcmd check", R_CMD_CHECK),
    ("use or print", R_USE_OR_PRINT),
]

#
# Re-validation of constraints at the end of the script, plus the
# PRINT which announces it
#
R_CONSTRAINT_CHECKS = re.compile(
    r"^(?:GO(?:\r?\n)+)?(?:"
    r"PRINT\s+N?'Checking existing data against newly created constraints';"
    r"|ALTER\s+TABLE\s+\S+\s+WITH\s+CHECK\s+CHECK\s+CONSTRAINT\s+\S+;"
    r")(?:\r?\n)*",
    flags=re.MULTILINE | re.IGNORECASE
)

def _leading_rule(text):
    for name, rule in RULES:
        matched = rule.match(text)
        if matched:
            return name, matched
    return None, None

def strip_preamble(text, logger=logging):
    """Repeatedly remove whichever rule matches the start of the text
    """
    text = text.lstrip("\r\n")
    while True:
        name, matched = _leading_rule(text)
        if not matched:
            return text
        logger.debug("Removing %s: %r", name, matched.group()[:60])
        text = text[matched.end():].lstrip("\r\n")

def sanitize_deployment_script(script, strip_constraint_checks=False, logger=logging):
    """Return the deployment script without its sqlcmd/environment boilerplate

    strip_constraint_checks - also remove the WITH CHECK CHECK CONSTRAINT
    statements which re-validate existing data against new constraints
    """
    script = strip_preamble(script, logger)
    if strip_constraint_checks:
        script = R_CONSTRAINT_CHECKS.sub("", script)
    return script
