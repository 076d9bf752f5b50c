import os

import pytest

from dacpactool import decompose

TABLE = "CREATE TABLE [dbo].[T] (\n    [Id] INT NOT NULL\n)"
INDEX = "CREATE NONCLUSTERED INDEX [IX_T_Id]\n    ON [dbo].[T]([Id] ASC)"
TRIGGER = "CREATE TRIGGER [dbo].[trg_T]\n    ON [dbo].[T]\n    AFTER INSERT\nAS\nBEGIN\n    SET NOCOUNT ON;\nEND"
CONSTRAINT = "ALTER TABLE [dbo].[T]\n    ADD CONSTRAINT [DF_T_Id] DEFAULT ((0)) FOR [Id]"

def table_path(schema, name):
    return os.path.join(schema, "Tables", "%s.sql" % name)

def script(*batches):
    return "\nGO\n".join(batches) + "\nGO\n"

def tree(root):
    files = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for filename in filenames:
            filepath = os.path.join(dirpath, filename)
            with open(filepath, "rb") as f:
                files[os.path.relpath(filepath, root)] = f.read()
    return files


def test_table_without_schema_goes_under_dbo(writer):
    decompose.decompose_script(script("CREATE TABLE Widgets (id int)"), writer)
    assert writer.files == {table_path("dbo", "Widgets"): "CREATE TABLE Widgets (id int)\n"}


def test_objects_go_into_their_type_folders(writer):
    decompose.decompose_script(script(
        "CREATE VIEW [sales].[vOrders] AS SELECT 1 AS x",
        "CREATE PROCEDURE [sales].[GetOrders] AS SELECT 1",
        "CREATE FUNCTION [dbo].[fnOne] () RETURNS INT AS BEGIN RETURN 1 END",
    ), writer)
    assert writer.files == {
        os.path.join("sales", "Views", "vOrders.sql"): "CREATE VIEW [sales].[vOrders] AS SELECT 1 AS x",
        os.path.join("sales", "Stored Procedures", "GetOrders.sql"): "CREATE PROCEDURE [sales].[GetOrders] AS SELECT 1",
        os.path.join("dbo", "Functions", "fnOne.sql"): "CREATE FUNCTION [dbo].[fnOne] () RETURNS INT AS BEGIN RETURN 1 END",
    }


def test_attachments_after_the_table_are_appended_with_a_separator(writer):
    decompose.decompose_script(script(TABLE, INDEX, CONSTRAINT), writer)
    assert writer.files == {
        table_path("dbo", "T"):
            TABLE + "\n"
            + "\nGO\n-- Index: IX_T_Id\n" + INDEX
            + "\nGO\n-- Alter Table Constraint\n" + CONSTRAINT
    }


def test_attachments_before_the_table_are_held_back_in_order(writer):
    decompose.decompose_script(script(INDEX, TRIGGER, TABLE), writer)
    assert writer.files == {
        table_path("dbo", "T"):
            TABLE + "\n"
            + "\n\n-- Index: IX_T_Id\n" + INDEX
            + "\n\n-- Trigger: trg_T\n" + TRIGGER
    }


def test_table_names_match_without_case(writer):
    index = "CREATE INDEX IX_Orders ON DBO.ORDERS (Id)"
    decompose.decompose_script(script("CREATE TABLE [dbo].[Orders] (Id INT)", index), writer)
    assert list(writer.files) == [table_path("dbo", "Orders")]
    assert writer.files[table_path("dbo", "Orders")].endswith("-- Index: IX_Orders\n" + index)


def test_attachments_for_a_missing_table_go_to_misc(writer):
    index = "CREATE INDEX IX1 ON dbo.Ghost(Id)"
    constraint = "ALTER TABLE dbo.Ghost ADD CONSTRAINT PK_Ghost PRIMARY KEY (Id)"
    counts = decompose.decompose_script(script(index, constraint), writer)
    assert writer.files == {
        os.path.join("Misc", "MissingTable_dbo_Ghost.sql"):
            "-- Index: IX1\n" + index + "\n\n-- Alter Table Constraint\n" + constraint
    }
    assert table_path("dbo", "Ghost") not in writer.files
    assert counts["missing table"] == 1


def test_unknown_batches_are_numbered_by_position(writer):
    text = "SET ANSI_NULLS ON\nGO\n\nGO\nEXEC sp_addextendedproperty @name = N'x'\nGO\n"
    decompose.decompose_script(text, writer)
    assert writer.files == {
        os.path.join("Misc", "Batch_1.sql"): "SET ANSI_NULLS ON",
        os.path.join("Misc", "Batch_3.sql"): "EXEC sp_addextendedproperty @name = N'x'",
    }


def test_every_batch_is_accounted_for(writer):
    batches = [
        INDEX,
        "CREATE TABLE dbo.Other (Id INT)",
        TABLE,
        TRIGGER,
        "CREATE VIEW dbo.vT AS SELECT Id FROM dbo.T",
        "CREATE INDEX IX_Gone ON dbo.Gone (Id)",
        "GRANT SELECT ON dbo.T TO reader",
    ]
    counts = decompose.decompose_script(script(*batches), writer)
    assert sum(n for kind, n in counts.items() if kind != "missing table") == len(batches)

    everything = "".join(writer.files.values())
    for batch in batches:
        assert everything.count(batch) == 1


def test_qualified_attachment_headers(writer):
    decompose.decompose_script(script(TABLE, INDEX, TRIGGER, CONSTRAINT), writer, attachment_header=decompose.QUALIFIED)
    text = writer.files[table_path("dbo", "T")]
    assert "-- Index: [IX_T_Id] ON [dbo].[T]\n" in text
    assert "-- Trigger: [dbo].[trg_T] ON [dbo].[T]\n" in text
    assert "-- Constraint: [dbo].[T]\n" in text


def test_unknown_attachment_header_style(writer):
    with pytest.raises(ValueError):
        decompose.Decomposer(writer, attachment_header="verbose")


def test_invalid_filename_characters_are_replaced(writer):
    decompose.decompose_script(script('CREATE VIEW [dbo].[Sales/Region] AS SELECT 1 AS x'), writer)
    assert list(writer.files) == [os.path.join("dbo", "Views", "Sales_Region.sql")]


def test_dot_names_stay_inside_the_output_root(tmp_path):
    script_filepath = tmp_path / "model.sql"
    script_filepath.write_text(
        script("CREATE TABLE [..].[Escaped] (Id INT)", "CREATE INDEX IX1 ON [..].[Ghost](Id)"),
        encoding="utf-8"
    )
    output_root = tmp_path / "out"

    decompose.from_filepath(str(script_filepath), str(output_root))

    assert not (tmp_path / "Tables" / "Escaped.sql").exists()
    assert sorted(tree(str(output_root))) == sorted([
        table_path("__", "Escaped"),
        os.path.join("Misc", "MissingTable____Ghost.sql"),
    ])


def test_dot_only_names_are_munged():
    assert decompose.munged_name("..") == "__"
    assert decompose.munged_name(".") == "_"
    assert decompose.munged_name("a.b") == "a.b"


def test_crlf_script_keeps_its_line_endings(tmp_path):
    script_filepath = tmp_path / "model.sql"
    script_filepath.write_bytes(b"CREATE TABLE dbo.T (\r\n    Id INT\r\n)\r\nGO\r\n")
    output_root = tmp_path / "out"

    decompose.from_filepath(str(script_filepath), str(output_root))

    with open(str(output_root / "dbo" / "Tables" / "T.sql"), "rb") as f:
        assert f.read() == b"CREATE TABLE dbo.T (\r\n    Id INT\r\n)\n"


def test_registry_forgets_attachments_once_flushed():
    registry = decompose.AttachmentRegistry()
    name = decompose.classify.QualifiedName("dbo", "T")
    registry.defer(name, "one")
    registry.defer(decompose.classify.QualifiedName("DBO", "t"), "two")
    assert registry.add_table(name, "dbo/Tables/T.sql") == ["one", "two"]
    assert list(registry.unresolved()) == []
    assert registry.table_path(decompose.classify.QualifiedName("Dbo", "T")) == "dbo/Tables/T.sql"


def test_from_filepath_writes_files(tmp_path):
    script_filepath = tmp_path / "model.sql"
    script_filepath.write_text(script(INDEX, TABLE, "CREATE INDEX IX1 ON dbo.Ghost(Id)"), encoding="utf-8")
    output_root = tmp_path / "out"

    decompose.from_filepath(str(script_filepath), str(output_root))

    files = tree(str(output_root))
    assert sorted(files) == sorted([
        table_path("dbo", "T"),
        os.path.join("Misc", "MissingTable_dbo_Ghost.sql"),
    ])
    assert files[table_path("dbo", "T")].decode("utf-8").startswith(TABLE)


def test_same_script_gives_the_same_tree(tmp_path):
    script_filepath = tmp_path / "model.sql"
    script_filepath.write_text(
        script(INDEX, TABLE, TRIGGER, "CREATE VIEW dbo.vT AS SELECT 1 AS x", "PRINT 'hello'"),
        encoding="utf-8"
    )

    decompose.from_filepath(str(script_filepath), str(tmp_path / "first"))
    decompose.from_filepath(str(script_filepath), str(tmp_path / "second"))

    assert tree(str(tmp_path / "first")) == tree(str(tmp_path / "second"))


def test_missing_script_writes_nothing(tmp_path):
    output_root = tmp_path / "out"
    with pytest.raises(FileNotFoundError):
        decompose.from_filepath(str(tmp_path / "missing.sql"), str(output_root))
    assert not output_root.exists()
