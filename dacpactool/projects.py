"""Find and build the MSBuild.Sdk.SqlProj project which holds the schema files
"""
import os
import glob
import logging
from xml.etree import ElementTree

from . import process

class x_projects(Exception): pass

SQLPROJ_SDK = "MSBuild.Sdk.SqlProj"

def find_sqlproj(sqlproj_dirpath):
    """Return the one .csproj below sqlproj_dirpath, checking that it's an SqlProj project
    """
    filepaths = sorted(glob.glob(os.path.join(sqlproj_dirpath, "**", "*.csproj"), recursive=True))
    if not filepaths:
        raise x_projects("No .csproj files found in %s" % sqlproj_dirpath)
    if len(filepaths) > 1:
        raise x_projects("Multiple .csproj files found (%s) in %s" % (",".join(filepaths), sqlproj_dirpath))

    [filepath] = filepaths
    sdk = ElementTree.parse(filepath).getroot().get("Sdk") or ""
    if not sdk.startswith(SQLPROJ_SDK):
        raise x_projects("No .csproj files found with %s SDK in %s" % (SQLPROJ_SDK, sqlproj_dirpath))

    return filepath

def build_sqlproj(sqlproj_dirpath, logger=logging):
    sqlproj_filepath = find_sqlproj(sqlproj_dirpath)
    process.run("dotnet", ["build", sqlproj_filepath], cwd=sqlproj_dirpath, logger=logger)
    return sqlproj_filepath

def find_dacpac(sqlproj_dirpath):
    """Return the one .dacpac produced by building the project
    """
    find_sqlproj(sqlproj_dirpath)

    filepaths = sorted(glob.glob(os.path.join(sqlproj_dirpath, "bin", "**", "*.dacpac"), recursive=True))
    if not filepaths:
        raise x_projects("No .dacpac files found in %s" % os.path.join(sqlproj_dirpath, "bin"))
    if len(filepaths) > 1:
        raise x_projects("Multiple .dacpac files found (%s) in %s" % (",".join(filepaths), sqlproj_dirpath))

    return filepaths[0]
