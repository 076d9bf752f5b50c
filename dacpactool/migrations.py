"""Put a deployment script into an Entity Framework migration

`dotnet ef migrations add` writes an empty migration class. The deployment
script is dropped in at the top of its Up method as a migrationBuilder.Sql()
call so that the migration replays exactly what sqlpackage worked out.
"""
import os
import glob
import logging
import re

from . import process

class x_migrations(Exception): pass

R_UP_METHOD = re.compile(
    r"protected\s+override\s+void\s+Up\s*\(\s*MigrationBuilder\s+(?P<builder>\w+)\s*\)\s*\{[ \t]*\r?\n?"
)

def raw_string_quotes(text):
    """C# raw string literals need more quotes than the longest run inside them
    """
    longest = max([len(run) for run in re.findall(r'"+', text)] or [0])
    return '"' * max(3, longest + 1)

def sql_call(builder, script):
    quotes = raw_string_quotes(script)
    return "        %s.Sql(%s\n%s\n%s);\n\n" % (builder, quotes, script.strip("\r\n"), quotes)

def insert_sql(source, script):
    """Return the source of a migration class with script run at the start of Up()
    """
    matched = R_UP_METHOD.search(source)
    if not matched:
        raise x_migrations("Unable to find the Up(MigrationBuilder) method")
    return source[:matched.end()] + sql_call(matched.group("builder"), script) + source[matched.end():]

def migrations_dirpath(target_project_path, migrations_dir):
    if os.path.isabs(migrations_dir):
        return migrations_dir
    return os.path.join(os.path.dirname(target_project_path), migrations_dir)

def find_migration_file(dirpath, migration_name):
    """Find the newest <timestamp>_<migration_name>.cs in dirpath
    """
    filepaths = sorted(glob.glob(os.path.join(dirpath, "*_%s.cs" % glob.escape(migration_name))), reverse=True)
    if not filepaths:
        raise x_migrations("No migration file for %s found in %s" % (migration_name, dirpath))
    return filepaths[0]

def add_migration(migration_name, target_project_path, startup_project_path, context_name, migrations_dir, logger=logging):
    """Ask dotnet ef for a new (empty) migration and return the path of its .cs file
    """
    process.run("dotnet", [
        "ef", "migrations", "add", migration_name,
        "--startup-project", startup_project_path,
        "--project", target_project_path,
        "--context", context_name,
        "--output-dir", migrations_dir,
    ], logger=logger)
    return find_migration_file(migrations_dirpath(target_project_path, migrations_dir), migration_name)

def write_script_into_migration(migration_filepath, script, logger=logging):
    with open(migration_filepath, encoding="utf-8-sig") as f:
        source = f.read()
    with open(migration_filepath, "w", encoding="utf-8") as f:
        f.write(insert_sql(source, script))
    logger.info("Wrote deployment script into %s", migration_filepath)
