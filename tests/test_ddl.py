import pytest

from sqlvm.errors import ConfigurationError
from sqlvm.sql import build_create_database, normalize_drive_letter, render_create_database
from sqlvm.sql.ddl import quote_identifier, quote_literal


def test_two_volumes_place_one_data_and_one_log_file_each():
    statement = build_create_database("Testdata", ["F", "G"])
    assert [(f.name, f.path) for f in statement.data_files] == [
        ("Testdata1", "F:\\Testdata1.mdf"),
        ("Testdata2", "G:\\Testdata2.ndf"),
    ]
    assert [(f.name, f.path) for f in statement.log_files] == [
        ("Testdatalog1", "F:\\Testdatalog1.ldf"),
        ("Testdatalog2", "G:\\Testdatalog2.ldf"),
    ]
    for spec in statement.data_files + statement.log_files:
        assert (spec.size_mb, spec.max_size_mb, spec.growth_mb) == (100, 200, 20)


def test_log_files_share_the_volume_of_their_data_file():
    statement = build_create_database("Testdata", ["F", "G", "H", "I"])
    data_drives = [f.path[0] for f in statement.data_files]
    log_drives = [f.path[0] for f in statement.log_files]
    assert data_drives == log_drives == ["F", "G", "H", "I"]
    assert [f.name for f in statement.log_files] == ["Testdatalog1", "Testdatalog2", "Testdatalog3", "Testdatalog4"]
    assert statement.data_files[0].path.endswith(".mdf")
    assert all(f.path.endswith(".ndf") for f in statement.data_files[1:])


def test_render_two_volumes():
    ddl = render_create_database(build_create_database("Testdata", ["F:", "g:\\"]))
    assert ddl == (
        "CREATE DATABASE [Testdata]\n"
        "ON PRIMARY\n"
        "    (NAME = Testdata1, FILENAME = N'F:\\Testdata1.mdf', SIZE = 100MB, MAXSIZE = 200MB, FILEGROWTH = 20MB),\n"
        "    (NAME = Testdata2, FILENAME = N'G:\\Testdata2.ndf', SIZE = 100MB, MAXSIZE = 200MB, FILEGROWTH = 20MB)\n"
        "LOG ON\n"
        "    (NAME = Testdatalog1, FILENAME = N'F:\\Testdatalog1.ldf', SIZE = 100MB, MAXSIZE = 200MB, FILEGROWTH = 20MB),\n"
        "    (NAME = Testdatalog2, FILENAME = N'G:\\Testdatalog2.ldf', SIZE = 100MB, MAXSIZE = 200MB, FILEGROWTH = 20MB)"
    )


def test_single_volume_has_no_continuation_commas():
    ddl = render_create_database(build_create_database("Testdata", ["F"]))
    assert ddl.count("(NAME =") == 2
    assert "),\n" not in ddl
    assert "Testdata1.mdf" in ddl and "Testdatalog1.ldf" in ddl


def test_zero_volumes_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        build_create_database("Testdata", [])


def test_custom_prefix_and_directory():
    statement = build_create_database("Sales", ["F"], file_prefix="Sales", directory="\\SQLData\\")
    assert statement.data_files[0].path == "F:\\SQLData\\Sales1.mdf"
    assert statement.log_files[0].name == "Saleslog1"


def test_invalid_prefix_is_rejected():
    with pytest.raises(ConfigurationError):
        build_create_database("Testdata", ["F"], file_prefix="bad prefix")


def test_identifiers_and_literals_are_escaped():
    assert quote_identifier("we]ird") == "[we]]ird]"
    assert quote_literal("O'Brien") == "N'O''Brien'"
    ddl = render_create_database(build_create_database("My]Db", ["F"]))
    assert ddl.startswith("CREATE DATABASE [My]]Db]\n")


@pytest.mark.parametrize("value", ["F", "f", "F:", "f:\\", " G "])
def test_normalize_drive_letter_accepts_common_forms(value):
    assert normalize_drive_letter(value) in {"F", "G"}


@pytest.mark.parametrize("value", ["", "FG", "1", "F:/x"])
def test_normalize_drive_letter_rejects_garbage(value):
    with pytest.raises(ConfigurationError):
        normalize_drive_letter(value)
