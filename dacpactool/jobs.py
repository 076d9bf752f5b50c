"""The jobs the dpt command runs

Each job takes its settings from the environment (see config) and a scratch
folder which the caller creates and removes afterwards.
"""
import os
import logging

from . import config
from . import decompose
from . import migrations
from . import process
from . import projects
from . import sqlpackage

def export_database(tempdir, options=config.DEFAULT_OPTIONS, logger=logging):
    """Extract the source database's schema and split it into the .sqlproj folder

    A failure to build the project afterwards is reported but isn't fatal:
    the files are there to be looked at either way.
    """
    connection_string = config.get_env_var(config.SOURCE_CONNECTION_STRING)
    sqlproj_dirpath = config.get_env_var(config.SQLPROJ_DIR_PATH)
    projects.find_sqlproj(sqlproj_dirpath)

    script_filepath = sqlpackage.extract_script(
        connection_string, os.path.join(tempdir, "model.sql"), logger=logger
    )
    decompose.from_filepath(script_filepath, sqlproj_dirpath, options.attachment_header, logger=logger)

    try:
        projects.build_sqlproj(sqlproj_dirpath, logger=logger)
    except process.x_process as err:
        logger.error("Failed to build .sqlproj project: %s", err)

def generate_migration_script(tempdir, options=config.DEFAULT_OPTIONS, logger=logging):
    """Build the .sqlproj and script what it would take to bring the
    destination database into line with it
    """
    sqlproj_dirpath = config.get_env_var(config.SQLPROJ_DIR_PATH)
    connection_string = config.get_env_var(config.DESTINATION_CONNECTION_STRING)

    projects.build_sqlproj(sqlproj_dirpath, logger=logger)
    dacpac_filepath = projects.find_dacpac(sqlproj_dirpath)
    logger.info("Scripting %s against the destination database", dacpac_filepath)
    return sqlpackage.script_deployment(
        dacpac_filepath, connection_string, os.path.join(tempdir, "deploy.sql"), options, logger=logger
    )

def generate_migration(tempdir, options=config.DEFAULT_OPTIONS, logger=logging):
    script = generate_migration_script(tempdir, options, logger)
    print(script)
    return script

def generate_ef_migration(migration_name, tempdir, options=config.DEFAULT_OPTIONS, logger=logging):
    """Add an EF migration whose Up() runs the generated deployment script
    """
    target_project_path = config.get_env_var(config.EF_TARGET_PROJECT_PATH)
    startup_project_path = config.get_env_var(config.EF_STARTUP_PROJECT_PATH)
    context_name = config.get_env_var(config.EF_CONTEXT_NAME)
    migrations_dir = config.get_env_var(config.EF_MIGRATIONS_DIR_PATH)

    script = generate_migration_script(tempdir, options, logger)
    migration_filepath = migrations.add_migration(
        migration_name, target_project_path, startup_project_path, context_name, migrations_dir, logger=logger
    )
    migrations.write_script_into_migration(migration_filepath, script, logger=logger)
    return migration_filepath
