"""Work out what kind of database object a batch creates, and what it's called

Each batch of the generated schema script defines one object. The object type
decides which folder it goes into; triggers, indexes and constraints don't get
a file of their own but are attached to the table they belong to, so for those
we also need the name of that table.

The patterns are tried in a fixed order and the first one which matches wins.
They search the whole batch, so a table definition whose text happens to
mention (say) a view is still a table.
"""
import collections
import re

DEFAULT_SCHEMA = "dbo"

TABLE = "table"
PROCEDURE = "procedure"
VIEW = "view"
FUNCTION = "function"
TRIGGER = "trigger"
INDEX = "index"
ALTER_CONSTRAINT = "alter constraint"
UNKNOWN = "unknown"

#
# Objects which get their own file, and the folder (within the schema folder)
# their files live in
#
FOLDERS = {
    TABLE : "Tables",
    PROCEDURE : "Stored Procedures",
    VIEW : "Views",
    FUNCTION : "Functions",
}
#
# Objects which are appended to the file of the table they're defined on
#
ATTACHMENTS = (TRIGGER, INDEX, ALTER_CONSTRAINT)


class QualifiedName(collections.namedtuple("QualifiedName", ["schema", "name"])):
    """A schema-qualified object name with its delimiters already removed

    SQL Server names are case-insensitive so two names which differ only in
    case refer to the same object: use .key wherever names are compared.
    """

    @property
    def key(self):
        return (self.schema.casefold(), self.name.casefold())

    def __str__(self):
        return "[%s].[%s]" % (self.schema, self.name)


#
# kind - one of the object kinds above
# name - the object's own name (None for constraints and unknown batches)
# table - the table an attachment belongs to (None for everything else)
#
Classified = collections.namedtuple("Classified", ["kind", "name", "table"])

def unquoted(identifier):
    """Remove [square brackets] or "double quotes" from around an identifier
    """
    identifier = identifier.strip()
    if len(identifier) >= 2:
        if identifier[0] == "[" and identifier[-1] == "]":
            return identifier[1:-1].replace("]]", "]")
        if identifier[0] == '"' and identifier[-1] == '"':
            return identifier[1:-1].replace('""', '"')
    return identifier

def qualified_name(schema, name):
    """Build a QualifiedName from regex groups, defaulting the schema
    """
    return QualifiedName(unquoted(schema) if schema else DEFAULT_SCHEMA, unquoted(name))


IDENTIFIER = r'(?:\[(?:[^\]]|\]\])+\]|"(?:[^"]|"")+"|[^\s.\[\]"(),;]+)'

def _qualified(prefix):
    """Pattern for an optionally schema-qualified name, captured as
    <prefix>schema and <prefix>name
    """
    return r"(?:(?P<{0}schema>{1})\s*\.\s*)?(?P<{0}name>{1})".format(prefix, IDENTIFIER)

def _pattern(pattern):
    return re.compile(pattern, flags=re.IGNORECASE)

OR_ALTER = r"(?:OR\s+ALTER\s+)?"
R_TABLE = _pattern(r"\bCREATE\s+TABLE\s+" + _qualified(""))
R_PROCEDURE = _pattern(r"\bCREATE\s+" + OR_ALTER + r"PROC(?:EDURE)?\s+" + _qualified(""))
R_VIEW = _pattern(r"\bCREATE\s+" + OR_ALTER + r"VIEW\s+" + _qualified(""))
R_FUNCTION = _pattern(r"\bCREATE\s+" + OR_ALTER + r"FUNCTION\s+" + _qualified(""))
R_TRIGGER = _pattern(
    r"\bCREATE\s+" + OR_ALTER + r"TRIGGER\s+" + _qualified("")
    + r"\s+ON\s+" + _qualified("table_")
)
R_INDEX = _pattern(
    r"\bCREATE\s+(?:UNIQUE\s+)?(?:(?:CLUSTERED|NONCLUSTERED)\s+)?"
    r"(?:(?:COLUMNSTORE|PRIMARY\s+XML|XML|SPATIAL)\s+)?INDEX\s+"
    r"(?P<name>" + IDENTIFIER + r")\s+ON\s+" + _qualified("table_")
)
R_ALTER_TABLE = _pattern(r"\bALTER\s+TABLE\s+" + _qualified("table_"))
R_ADD_CONSTRAINT = _pattern(re.escape("ADD CONSTRAINT"))

#
# Objects which are defined in their own right, in priority order
#
OBJECT_PATTERNS = [
    (TABLE, R_TABLE),
    (PROCEDURE, R_PROCEDURE),
    (VIEW, R_VIEW),
    (FUNCTION, R_FUNCTION),
]

def classify(batch):
    """Return a Classified tuple for the text of one batch

    This is purely a matter of pattern-matching: nothing here touches the
    filesystem or remembers earlier batches.
    """
    for kind, pattern in OBJECT_PATTERNS:
        matched = pattern.search(batch)
        if matched:
            return Classified(kind, qualified_name(matched.group("schema"), matched.group("name")), None)

    #
    # A trigger is named in its own schema but belongs with the table
    # named in its ON clause
    #
    matched = R_TRIGGER.search(batch)
    if matched:
        return Classified(
            TRIGGER,
            qualified_name(matched.group("schema"), matched.group("name")),
            qualified_name(matched.group("table_schema"), matched.group("table_name"))
        )

    #
    # Index names are only unique within their table so there's no schema
    #
    matched = R_INDEX.search(batch)
    if matched:
        return Classified(
            INDEX,
            QualifiedName(None, unquoted(matched.group("name"))),
            qualified_name(matched.group("table_schema"), matched.group("table_name"))
        )

    matched = R_ALTER_TABLE.search(batch)
    if matched and R_ADD_CONSTRAINT.search(batch):
        return Classified(
            ALTER_CONSTRAINT,
            None,
            qualified_name(matched.group("table_schema"), matched.group("table_name"))
        )

    return Classified(UNKNOWN, None, None)
