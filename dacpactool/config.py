"""Settings come from environment variables, optionally from a .env file
in the working directory
"""
import os
import collections

from dotenv import load_dotenv

from . import decompose

class x_config(Exception): pass

SOURCE_CONNECTION_STRING = "SOURCE_CONNECTION_STRING"
DESTINATION_CONNECTION_STRING = "DESTINATION_CONNECTION_STRING"
SQLPROJ_DIR_PATH = "SQLPROJ_DIR_PATH"
EF_TARGET_PROJECT_PATH = "EF_TARGET_PROJECT_PATH"
EF_STARTUP_PROJECT_PATH = "EF_STARTUP_PROJECT_PATH"
EF_CONTEXT_NAME = "EF_CONTEXT_NAME"
EF_MIGRATIONS_DIR_PATH = "EF_MIGRATIONS_DIR_PATH"
DPT_SQLPACKAGE = "DPT_SQLPACKAGE"
DPT_ATTACHMENT_HEADER = "DPT_ATTACHMENT_HEADER"
DPT_STRIP_CONSTRAINT_CHECKS = "DPT_STRIP_CONSTRAINT_CHECKS"

ENVIRONMENT_VARIABLES = {
    SOURCE_CONNECTION_STRING : "Connection string to the source database",
    DESTINATION_CONNECTION_STRING : "Connection string to the destination database",
    SQLPROJ_DIR_PATH : "Path to the .sqlproj project directory",
    EF_TARGET_PROJECT_PATH : "Project which will hold the EF migration",
    EF_STARTUP_PROJECT_PATH : "Startup project for dotnet ef",
    EF_CONTEXT_NAME : "DbContext the migration is for",
    EF_MIGRATIONS_DIR_PATH : "Migrations folder (absolute or relative to the target project)",
    DPT_SQLPACKAGE : "sqlpackage executable (default: sqlpackage)",
    DPT_ATTACHMENT_HEADER : "short or qualified comments above triggers/indexes/constraints (default: short)",
    DPT_STRIP_CONSTRAINT_CHECKS : "1 to drop constraint re-validation from deployment scripts (default: 0)",
}

#
# attachment_header - how to label triggers etc. appended to a table file
# strip_constraint_checks - whether deployment scripts skip re-validating constraints
#
Options = collections.namedtuple("Options", ["attachment_header", "strip_constraint_checks"])
DEFAULT_OPTIONS = Options(decompose.SHORT, False)

TRUE_VALUES = {"1", "true", "yes", "y", "on"}

def load(filepath=".env"):
    """Load variables from a .env file if there is one. Variables already set
    in the environment win.
    """
    return load_dotenv(filepath, override=False)

def get_env_var(key):
    value = os.environ.get(key)
    if not value:
        raise x_config("The environment variable '%s' is not set." % key)
    return value

def as_bool(value):
    return str(value).strip().lower() in TRUE_VALUES

def options_from_env(attachment_header=None, strip_constraint_checks=None):
    """Build Options from the environment; anything passed in explicitly wins
    """
    if attachment_header is None:
        attachment_header = os.environ.get(DPT_ATTACHMENT_HEADER) or DEFAULT_OPTIONS.attachment_header
    attachment_header = attachment_header.strip().lower()
    if attachment_header not in decompose.ATTACHMENT_HEADERS:
        raise x_config(
            "%s must be one of %s, not '%s'"
            % (DPT_ATTACHMENT_HEADER, ", ".join(decompose.ATTACHMENT_HEADERS), attachment_header)
        )

    if strip_constraint_checks is None:
        strip_constraint_checks = as_bool(os.environ.get(DPT_STRIP_CONSTRAINT_CHECKS, ""))

    return Options(attachment_header, strip_constraint_checks)

def sqlpackage_executable():
    return os.environ.get(DPT_SQLPACKAGE) or "sqlpackage"
