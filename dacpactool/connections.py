"""Make sense of ADO-style SQL Server connection strings

The connection strings handed to sqlpackage look like:

    Server=tcp:myserver,1433;Initial Catalog=Sales;User ID=me;Password=...;

sqlpackage needs the database name separately when extracting, so it's
pulled out of the string; if the string doesn't say, the server is asked.
"""
import re

ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

R_PAIR = re.compile(
    r"""\s*(?P<key>[^=;]+?)\s*=\s*(?P<value>"(?:[^"]|"")*"|'(?:[^']|'')*'|\{(?:[^}]|\}\})*\}|[^;]*?)\s*(?:;|$)"""
)

#
# ADO keyword => ODBC keyword. Anything not listed here is passed through as-is
#
ODBC_KEYWORDS = {
    "server" : "Server",
    "data source" : "Server",
    "address" : "Server",
    "addr" : "Server",
    "network address" : "Server",
    "initial catalog" : "Database",
    "database" : "Database",
    "user id" : "UID",
    "uid" : "UID",
    "user" : "UID",
    "password" : "PWD",
    "pwd" : "PWD",
    "encrypt" : "Encrypt",
    "trustservercertificate" : "TrustServerCertificate",
    "trust server certificate" : "TrustServerCertificate",
    "connect timeout" : "Connection Timeout",
    "connection timeout" : "Connection Timeout",
}
TRUSTED_KEYWORDS = {"integrated security", "trusted_connection"}
TRUSTED_VALUES = {"sspi", "true", "yes"}
IGNORED_KEYWORDS = {"persist security info", "multipleactiveresultsets", "application name", "pooling"}

def unquoted_value(value):
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    if len(value) >= 2 and value[0] == "{" and value[-1] == "}":
        return value[1:-1].replace("}}", "}")
    return value

def parse_connection_string(connection_string):
    """Return a dict of lowercased keyword => value
    """
    settings = {}
    for matched in R_PAIR.finditer(connection_string or ""):
        key = " ".join(matched.group("key").split()).lower()
        settings[key] = unquoted_value(matched.group("value"))
    return settings

def database_name(connection_string):
    """The database named in the connection string, or None if there isn't one
    """
    settings = parse_connection_string(connection_string)
    return settings.get("initial catalog") or settings.get("database") or None

def to_odbc(connection_string, driver=ODBC_DRIVER):
    """Translate an ADO-style connection string into one pyodbc understands
    """
    connectors = ["Driver={%s}" % driver]
    trusted = False
    for key, value in parse_connection_string(connection_string).items():
        if key in TRUSTED_KEYWORDS:
            trusted = value.lower() in TRUSTED_VALUES
        elif key in IGNORED_KEYWORDS:
            continue
        else:
            value = value.replace("}", "}}")
            connectors.append("%s={%s}" % (ODBC_KEYWORDS.get(key, key), value))
    if trusted:
        connectors.append("Trusted_Connection=Yes")
    return ";".join(connectors)

def mssql(connection_string, **kwargs):
    import pyodbc
    return pyodbc.connect(to_odbc(connection_string), **kwargs)

def current_database(connection_string):
    """The database named in the connection string or, failing that, the
    login's default database on the server
    """
    name = database_name(connection_string)
    if name:
        return name

    db = mssql(connection_string)
    try:
        q = db.cursor()
        try:
            q.execute("SELECT DB_NAME();")
            [name] = q.fetchone()
        finally:
            q.close()
    finally:
        db.close()
    return name
