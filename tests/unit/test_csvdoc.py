"""Tests for siteadmin.csvdoc — on-disk format, payload validation, store."""

from pathlib import Path

import pytest

from siteadmin.csvdoc import (
    CsvDocument,
    CsvStore,
    decode,
    document_from_payload,
    document_to_payload,
    encode,
)
from siteadmin.errors import ParseError, ValidationError, WriteError


class TestDecode:
    def test_description_header_and_rows(self) -> None:
        doc = decode('"Lab members","name","role"\n"","Alice","Engineer"\n"","Bob","Designer"\n')
        assert doc.description == "Lab members"
        assert doc.header_columns == ["name", "role"]
        assert doc.rows == [
            {"name": "Alice", "role": "Engineer"},
            {"name": "Bob", "role": "Designer"},
        ]

    def test_empty_input(self) -> None:
        assert decode("") == CsvDocument(description="", header_columns=[], rows=[])

    def test_header_names_trimmed_and_empties_dropped(self) -> None:
        doc = decode('"desc", name , ,"role ",\n')
        assert doc.header_columns == ["name", "role"]
        assert doc.rows == []

    def test_unquoted_header_line(self) -> None:
        doc = decode("desc,name,role\n,Alice,Engineer\n")
        assert doc.header_columns == ["name", "role"]
        assert doc.rows == [{"name": "Alice", "role": "Engineer"}]

    def test_first_cell_of_data_row_is_discarded(self) -> None:
        doc = decode('"desc","name"\n"ignored","Alice"\n')
        assert doc.rows == [{"name": "Alice"}]

    def test_short_rows_padded_with_empty_strings(self) -> None:
        doc = decode('"desc","name","role","email"\n"","Alice"\n')
        assert doc.rows == [{"name": "Alice", "role": "", "email": ""}]

    def test_long_rows_truncated(self) -> None:
        doc = decode('"desc","name"\n"","Alice","extra","more"\n')
        assert doc.rows == [{"name": "Alice"}]

    def test_newlines_inside_quoted_fields(self) -> None:
        doc = decode('"line one\nline two","title"\n"","first\nsecond"\n')
        assert doc.description == "line one\nline two"
        assert doc.rows == [{"title": "first\nsecond"}]

    def test_stray_quotes_tolerated(self) -> None:
        doc = decode('"desc","name"\n,Al"ice\n')
        assert doc.rows == [{"name": 'Al"ice'}]

    def test_values_not_trimmed(self) -> None:
        doc = decode('"desc","name"\n"","  padded  "\n')
        assert doc.rows == [{"name": "  padded  "}]

    def test_duplicate_header_keeps_first_column(self) -> None:
        doc = decode('"desc","name","name"\n"","first","second"\n')
        assert doc.header_columns == ["name"]
        assert doc.rows == [{"name": "first"}]

    def test_crlf_line_endings(self) -> None:
        doc = decode('"desc","name"\r\n"","Alice"\r\n')
        assert doc.rows == [{"name": "Alice"}]


class TestEncode:
    def test_layout(self) -> None:
        doc = CsvDocument(
            description="Lab members",
            header_columns=["name", "role"],
            rows=[{"name": "Alice", "role": ""}],
        )
        assert encode(doc) == '"Lab members","name","role"\n"","Alice",""\n'

    def test_empty_description_keeps_placeholder(self) -> None:
        doc = CsvDocument(description="", header_columns=["name"], rows=[])
        assert encode(doc) == '"","name"\n'

    def test_quotes_escaped(self) -> None:
        doc = CsvDocument(description='say "hi"', header_columns=["a"], rows=[{"a": 'x,"y"'}])
        assert encode(doc) == '"say ""hi""","a"\n"","x,""y"""\n'

    def test_missing_values_written_empty(self) -> None:
        doc = CsvDocument(description="d", header_columns=["a", "b"], rows=[{"a": "1"}])
        assert encode(doc).splitlines()[1] == '"","1",""'


class TestRoundTrip:
    @pytest.mark.parametrize(
        "doc",
        [
            CsvDocument(),
            CsvDocument(description="only a description"),
            CsvDocument(
                description="News, with commas",
                header_columns=["date", "title", "url"],
                rows=[
                    {"date": "2024-04-01", "title": 'The "big" news', "url": ""},
                    {"date": "", "title": "", "url": ""},
                    {"date": " 2024 ", "title": "multi\nline", "url": "https://example.com/?a=1,2"},
                ],
            ),
        ],
    )
    def test_decode_inverts_encode(self, doc: CsvDocument) -> None:
        assert decode(encode(doc)) == doc

    def test_file_roundtrip_is_stable(self) -> None:
        text = '"Lab members","name","role"\n"","Alice","Engineer"\n'
        assert encode(decode(text)) == text


class TestPayload:
    def test_from_payload(self) -> None:
        doc = document_from_payload(
            {
                "file": "members",
                "description": "desc",
                "header": "name, role",
                "data": [{"name": "Alice", "role": "Engineer", "extra": "dropped"}, {"name": 7}],
            }
        )
        assert doc.header_columns == ["name", "role"]
        assert doc.rows == [
            {"name": "Alice", "role": "Engineer"},
            {"name": "7", "role": ""},
        ]

    def test_header_as_list(self) -> None:
        doc = document_from_payload({"header": ["name", "role"], "data": []})
        assert doc.header_columns == ["name", "role"]
        assert doc.description == ""

    @pytest.mark.parametrize(
        "payload",
        [
            {"header": "name"},
            {"header": "name", "data": "not a list"},
            {"header": "name", "data": ["not a row"]},
            {"header": 5, "data": []},
            {"header": "name", "description": 5, "data": []},
            ["not", "a", "dict"],
        ],
    )
    def test_invalid_payloads(self, payload) -> None:
        with pytest.raises(ValidationError):
            document_from_payload(payload)

    def test_to_payload(self) -> None:
        doc = CsvDocument(description="d", header_columns=["a", "b"], rows=[{"a": "1", "b": "2"}])
        assert document_to_payload(doc) == {
            "description": "d",
            "header": "a,b",
            "data": [{"a": "1", "b": "2"}],
        }


class TestCsvStore:
    @pytest.fixture
    def store(self, tmp_path: Path) -> CsvStore:
        return CsvStore({"members": tmp_path / "members.csv", "news": tmp_path / "missing" / "news.csv"})

    def test_unknown_file_key(self, store: CsvStore) -> None:
        with pytest.raises(ValidationError):
            store.path_for("secrets")
        with pytest.raises(ValidationError):
            store.path_for(None)

    def test_write_then_read(self, store: CsvStore, tmp_path: Path) -> None:
        doc = CsvDocument(description="d", header_columns=["name"], rows=[{"name": "Alice"}])
        store.write("members", doc)
        assert (tmp_path / "members.csv").read_text(encoding="utf-8") == '"d","name"\n"","Alice"\n'
        assert store.read("members") == doc

    def test_read_missing_file(self, store: CsvStore) -> None:
        with pytest.raises(ParseError):
            store.read("members")

    def test_read_undecodable_file(self, store: CsvStore, tmp_path: Path) -> None:
        (tmp_path / "members.csv").write_bytes(b'"desc","name"\n"","\xff\xfe"\n')
        with pytest.raises(ParseError):
            store.read("members")

    def test_write_into_missing_directory(self, store: CsvStore) -> None:
        with pytest.raises(WriteError):
            store.write("news", CsvDocument())

    def test_last_writer_wins(self, store: CsvStore) -> None:
        store.write("members", CsvDocument(description="first"))
        store.write("members", CsvDocument(description="second"))
        assert store.read("members").description == "second"
