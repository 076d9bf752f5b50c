"""dpt - the dacpac tool command line

    dpt export-database
    dpt generate-migration
    dpt generate-ef-migration <name>
    dpt split <script> <output_root>
    dpt sanitize <script> [-o <output>]
"""
import sys
import argparse
import logging
import shutil
import tempfile

from . import __version__
from . import config
from . import decompose
from . import jobs
from . import migrations
from . import process
from . import projects
from . import sanitize

logger = logging.getLogger("dpt")

LOG_FORMAT = "%(name)s - %(asctime)s - %(levelname)s - %(message)s"
ERRORS = (config.x_config, projects.x_projects, process.x_process, migrations.x_migrations, OSError)

def setup_logging(debug=False, log_filepath=None):
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stderr)
    stdout_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.addHandler(stdout_handler)

    if log_filepath:
        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

def usage_epilog():
    lines = ["Environment Variables:"]
    for name, description in config.ENVIRONMENT_VARIABLES.items():
        lines.append("  %s - %s" % (name, description))
    lines.append("")
    lines.append("Can load .env file from working directory to set environment variables")
    return "\n".join(lines)

def build_parser():
    parser = argparse.ArgumentParser(
        prog="dpt",
        description="Dacpac Tool v%s" % __version__,
        epilog=usage_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--env-file", default=".env", help="File of environment variables to load (default: .env)")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    parser.add_argument("--attachment-header", choices=decompose.ATTACHMENT_HEADERS, help="Comment style above triggers/indexes/constraints")
    parser.add_argument("--strip-constraint-checks", dest="strip_constraint_checks", action="store_true")
    parser.add_argument("--no-strip-constraint-checks", dest="strip_constraint_checks", action="store_false")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--no-debug", dest="debug", action="store_false")
    parser.set_defaults(debug=False, strip_constraint_checks=None)

    subparsers = parser.add_subparsers(dest="job", metavar="<job>")
    subparsers.add_parser("export-database", help="Exports the database schema to a .sqlproj project")
    subparsers.add_parser("generate-migration", help="Builds .sqlproj project and generates migration scripts")
    ef_parser = subparsers.add_parser("generate-ef-migration", help="Builds .sqlproj project and generates ef migration")
    ef_parser.add_argument("name", help="Name of the migration")
    split_parser = subparsers.add_parser("split", help="Splits a full schema script into per-object files")
    split_parser.add_argument("script", help="Path to the full schema script")
    split_parser.add_argument("output_root", help="Folder to write the object files into")
    sanitize_parser = subparsers.add_parser("sanitize", help="Removes sqlcmd boilerplate from a deployment script")
    sanitize_parser.add_argument("script", help="Path to the deployment script")
    sanitize_parser.add_argument("-o", "--output", help="Write here instead of to stdout")
    return parser

def run_job(args, options):
    if args.job == "split":
        decompose.from_filepath(args.script, args.output_root, options.attachment_header, logger=logger)
        return

    if args.job == "sanitize":
        with open(args.script, encoding="utf-8-sig") as f:
            script = f.read()
        script = sanitize.sanitize_deployment_script(script, options.strip_constraint_checks, logger=logger)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(script)
        else:
            print(script)
        return

    #
    # The remaining jobs work through files in a scratch folder
    # which goes whether or not the job succeeds
    #
    tempdir = tempfile.mkdtemp(prefix="dpt-")
    logger.info("Temp path: %s", tempdir)
    try:
        if args.job == "export-database":
            jobs.export_database(tempdir, options, logger=logger)
        elif args.job == "generate-migration":
            jobs.generate_migration(tempdir, options, logger=logger)
        elif args.job == "generate-ef-migration":
            jobs.generate_ef_migration(args.name, tempdir, options, logger=logger)
    finally:
        shutil.rmtree(tempdir, ignore_errors=True)

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.job:
        parser.print_help()
        return 0

    setup_logging(args.debug, args.log_file)
    config.load(args.env_file)
    try:
        options = config.options_from_env(args.attachment_header, args.strip_constraint_checks)
        run_job(args, options)
    except ERRORS as err:
        logger.error("%s", err)
        logger.debug("Failed", exc_info=True)
        return 1
    return 0

def command_line():
    sys.exit(main())

if __name__ == '__main__':
    command_line()
