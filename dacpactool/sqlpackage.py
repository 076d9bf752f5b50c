"""Hand off to Microsoft's sqlpackage tool for schema extraction and deployment scripts

sqlpackage does the real work of reading a database's schema and of comparing
a compiled .dacpac against a live database. We only drive it from the command
line and pick up the files it writes.
"""
import os
import logging

from . import config
from . import connections
from . import process
from . import sanitize

#
# Deployment options which keep server- and environment-specific noise
# out of the generated script
#
DEPLOY_PROPERTIES = [
    ("ScriptDatabaseOptions", False),
    ("IgnorePermissions", True),
    ("IgnoreLoginSids", True),
    ("IgnoreRoleMembership", True),
    ("IgnoreUserSettingsObjects", True),
    ("IgnoreAnsiNulls", True),
    ("IgnoreAuthorizer", True),
    ("DoNotEvaluateSqlCmdVariables", True),
    ("IgnoreWithNocheckOnCheckConstraints", True),
]
CONSTRAINT_CHECK_PROPERTIES = [
    ("DropConstraintsNotInSource", True),
    ("ScriptNewConstraintValidation", False),
]

def deploy_properties(strip_constraint_checks=False):
    properties = list(DEPLOY_PROPERTIES)
    if strip_constraint_checks:
        properties.extend(CONSTRAINT_CHECK_PROPERTIES)
    return ["/p:%s=%s" % (name, value) for (name, value) in properties]

def _database_args(connection_string, switch):
    """sqlpackage wants the database named. If the connection string doesn't
    name it, find out from the server which database the login lands in
    """
    if connections.database_name(connection_string):
        return []
    return ["/%s:%s" % (switch, connections.current_database(connection_string))]

def extract_script(connection_string, script_filepath, logger=logging):
    """Extract the schema of the database as one full script at script_filepath
    """
    args = [
        "/Action:Extract",
        "/SourceConnectionString:%s" % connection_string,
        "/TargetFile:%s" % script_filepath,
        "/p:ExtractTarget=File",
        "/p:ExtractAllTableData=False",
    ]
    args.extend(_database_args(connection_string, "SourceDatabaseName"))
    process.run(config.sqlpackage_executable(), args, logger=logger)
    if not os.path.isfile(script_filepath):
        raise process.x_process("sqlpackage did not write %s" % script_filepath)
    return script_filepath

def script_deployment(dacpac_filepath, connection_string, output_filepath, options=config.DEFAULT_OPTIONS, logger=logging):
    """Generate the script which would bring the target database into line
    with the dacpac and return it with its sqlcmd boilerplate removed
    """
    args = [
        "/Action:Script",
        "/SourceFile:%s" % dacpac_filepath,
        "/TargetConnectionString:%s" % connection_string,
        "/OutputPath:%s" % output_filepath,
    ]
    args.extend(_database_args(connection_string, "TargetDatabaseName"))
    args.extend(deploy_properties(options.strip_constraint_checks))
    process.run(config.sqlpackage_executable(), args, logger=logger)

    with open(output_filepath, encoding="utf-8-sig") as f:
        script = f.read()
    return sanitize.sanitize_deployment_script(script, options.strip_constraint_checks, logger=logger)
