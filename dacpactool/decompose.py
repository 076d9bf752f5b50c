"""Take a generated schema script and split it into its component objects

Extracting a SQL Server database to a single script gives one long series of
batches separated by GO lines. There's a need to break those objects out into
individual files in the layout a .sqlproj project expects:

    <root>/<schema>/Tables/<table>.sql
    <root>/<schema>/Views/<view>.sql
    <root>/<schema>/Functions/<function>.sql
    <root>/<schema>/Stored Procedures/<procedure>.sql

Triggers, indexes and ALTER TABLE ... ADD CONSTRAINT batches don't get a file
of their own: they're appended to the file of the table they're defined on.
The script doesn't guarantee that the table comes first so anything for a
table we haven't yet seen is held back until the table turns up. Whatever is
still held back at the end goes to Misc/MissingTable_<schema>_<table>.sql, and
any batch we can't classify goes to Misc/Batch_<n>.sql
"""
import os, sys
import collections
import logging
import re

from . import batches
from . import classify

MISC_FOLDER = "Misc"
SHORT = "short"
QUALIFIED = "qualified"
ATTACHMENT_HEADERS = (SHORT, QUALIFIED)

def munged_name(name):
    """Remove characters from a database object name which aren't valid on the filesystem

    A name made only of dots ([.] or [..]) would otherwise be taken as the
    current or parent folder
    """
    if name.strip(".") == "":
        name = name.replace(".", "_")
    return re.sub(r'[<>:"/\\|?*]', "_", name)


class FileWriter(object):
    """Write and append text files below a root folder, creating folders on demand

    Paths handed in are relative to the root. Every decomposition writes
    through one of these so the algorithm can be run against something which
    doesn't touch the filesystem.
    """

    def __init__(self, root):
        self.root = root

    def _filepath(self, relpath):
        filepath = os.path.join(self.root, relpath)
        os.makedirs(os.path.dirname(filepath), exist_ok=True)
        return filepath

    def write(self, relpath, text):
        with open(self._filepath(relpath), "w", encoding="utf-8", newline="") as f:
            f.write(text)

    def append(self, relpath, text):
        with open(self._filepath(relpath), "a", encoding="utf-8", newline="") as f:
            f.write(text)


class AttachmentRegistry(object):
    """Track the table files written so far and the attachments waiting for
    tables which haven't been written yet

    Both maps are keyed on QualifiedName.key so that [dbo].[Orders] and
    DBO.orders are the same table. The name as first seen is kept alongside
    so that it can be used to name a fallback file.
    """

    def __init__(self):
        self.tables = {}
        self.pending = collections.OrderedDict()

    def add_table(self, table, relpath):
        """Record a table's file and return any attachments which were waiting for it
        """
        self.tables[table.key] = relpath
        _, fragments = self.pending.pop(table.key, (table, []))
        return fragments

    def table_path(self, table):
        return self.tables.get(table.key)

    def defer(self, table, fragment):
        _, fragments = self.pending.setdefault(table.key, (table, []))
        fragments.append(fragment)

    def unresolved(self):
        """Generate (table, fragments) for every table which never turned up
        """
        for table, fragments in self.pending.values():
            yield table, fragments


def attachment_header(classified, style=SHORT):
    """One-line comment introducing an attached trigger, index or constraint
    """
    if style == QUALIFIED:
        if classified.kind == classify.TRIGGER:
            return "-- Trigger: %s ON %s" % (classified.name, classified.table)
        elif classified.kind == classify.INDEX:
            return "-- Index: [%s] ON %s" % (classified.name.name, classified.table)
        else:
            return "-- Constraint: %s" % (classified.table,)
    else:
        if classified.kind == classify.TRIGGER:
            return "-- Trigger: %s" % classified.name.name
        elif classified.kind == classify.INDEX:
            return "-- Index: %s" % classified.name.name
        else:
            return "-- Alter Table Constraint"


class Decomposer(object):
    """Route each batch of one script to its file

    One instance covers one run: the attachment registry lives and dies with it.
    """

    def __init__(self, writer, attachment_header=SHORT, logger=logging):
        if attachment_header not in ATTACHMENT_HEADERS:
            raise ValueError("Unknown attachment header style %r" % attachment_header)
        self.writer = writer
        self.attachment_header = attachment_header
        self.logger = logger
        self.registry = AttachmentRegistry()
        self.counts = collections.Counter()

    def object_path(self, kind, name):
        return os.path.join(
            munged_name(name.schema),
            classify.FOLDERS[kind],
            "%s.sql" % munged_name(name.name)
        )

    def add_table(self, name, batch):
        relpath = self.object_path(classify.TABLE, name)
        self.writer.write(relpath, batch + "\n")
        for fragment in self.registry.add_table(name, relpath):
            self.logger.debug("Appending held-back attachment to %s", name)
            self.writer.append(relpath, "\n\n" + fragment)

    def add_attachment(self, classified, batch):
        fragment = attachment_header(classified, self.attachment_header) + "\n" + batch
        relpath = self.registry.table_path(classified.table)
        if relpath:
            self.writer.append(relpath, "\nGO\n" + fragment)
        else:
            self.logger.debug("%s has not been seen yet; holding back %s", classified.table, classified.kind)
            self.registry.defer(classified.table, fragment)

    def add_batch(self, position, batch):
        classified = classify.classify(batch)
        self.counts[classified.kind] += 1
        self.logger.debug("Batch %d: %s => %s", position, classified.kind, classified.name or classified.table)

        if classified.kind == classify.TABLE:
            self.add_table(classified.name, batch)
        elif classified.kind in classify.FOLDERS:
            self.writer.write(self.object_path(classified.kind, classified.name), batch)
        elif classified.kind in classify.ATTACHMENTS:
            self.add_attachment(classified, batch)
        else:
            self.writer.write(os.path.join(MISC_FOLDER, "Batch_%d.sql" % position), batch)

    def finish(self):
        """Write out whatever attachments never found their table
        """
        for table, fragments in self.registry.unresolved():
            self.logger.warning(
                "Table %s was never created; writing %d attachment(s) to %s",
                table, len(fragments), MISC_FOLDER
            )
            filename = "MissingTable_%s_%s.sql" % (munged_name(table.schema), munged_name(table.name))
            self.writer.write(os.path.join(MISC_FOLDER, filename), "\n\n".join(fragments))
            self.counts["missing table"] += 1

    def decompose(self, text):
        for position, batch in batches.batches(text):
            self.add_batch(position, batch)
        self.finish()
        return self.counts


def decompose_script(text, writer, attachment_header=SHORT, logger=logging):
    """Split the text of a full schema script into files handed to `writer`

    Returns a Counter of the number of batches of each kind
    """
    return Decomposer(writer, attachment_header, logger).decompose(text)

def from_filepath(script_filepath, output_root, attachment_header=SHORT, logger=logging):
    """Read a schema script and split it into files below `output_root`

    The script is read in full before anything is written so a missing or
    unreadable file leaves the output folder untouched.
    """
    with open(script_filepath, encoding="utf-8-sig", newline="") as f:
        text = f.read()

    logger.info("Splitting %s into %s", script_filepath, output_root)
    counts = decompose_script(text, FileWriter(output_root), attachment_header, logger)
    for kind, n in sorted(counts.items()):
        logger.info("%s: %d", kind, n)
    return counts

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    from_filepath(*sys.argv[1:])
