"""Tests for CSV parsing and file export."""

import pytest

from trainset_ingest.utils.file_io import (
    MalformedCsvRow,
    parse_csv_text,
    read_csv_file,
    to_csv,
    write_csv,
    write_parquet,
)


class TestParseCsvText:
    """Tests for CSV text parsing."""

    def test_headers_and_rows(self):
        """Test first line gives the headers, trimmed."""
        result = parse_csv_text(" Trainset ID , Stabling Bay Number\nT001,B-12\nT004,A-02\n")

        assert result.headers == ["Trainset ID", "Stabling Bay Number"]
        assert result.rows == [
            {"Trainset ID": "T001", "Stabling Bay Number": "B-12"},
            {"Trainset ID": "T004", "Stabling Bay Number": "A-02"},
        ]
        assert result.errors == []

    def test_blank_lines_skipped(self):
        """Test blank and whitespace-only lines are ignored."""
        result = parse_csv_text("a,b\n\n1,2\n   \n3,4\n\n")
        assert result.rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_quoted_cells(self):
        """Test quoted commas, quotes and newlines."""
        result = parse_csv_text('id,note\nT1,"bogie:72%, brake:70%"\nT2,"say ""hi""\nsoon"\n')

        assert result.rows[0]["note"] == "bogie:72%, brake:70%"
        assert result.rows[1]["note"] == 'say "hi"\nsoon'

    def test_byte_order_mark(self):
        """Test a leading BOM does not leak into the first header."""
        result = parse_csv_text("\ufeffTrainset ID,x\nT1,1\n")
        assert result.headers[0] == "Trainset ID"

    def test_crlf_line_endings(self):
        """Test Windows line endings."""
        result = parse_csv_text("a,b\r\n1,2\r\n")
        assert result.rows == [{"a": "1", "b": "2"}]

    def test_too_few_fields(self):
        """Test short rows are returned and reported."""
        result = parse_csv_text("a,b\n1\n")

        assert result.rows == [{"a": "1"}]
        assert result.malformed == [
            MalformedCsvRow(2, "expected 2 fields but parsed 1 (too few fields)"),
        ]
        assert result.errors == ["Line 2: expected 2 fields but parsed 1 (too few fields)"]

    def test_too_many_fields(self):
        """Test extra cells are dropped and reported."""
        result = parse_csv_text("a,b\n1,2\n3,4,5\n")

        assert result.rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
        assert len(result.malformed) == 1
        assert "too many fields" in result.errors[0]

    def test_unreadable_record_does_not_stop_parsing(self):
        """Test rows after a cell over the field size limit are still parsed."""
        text = "train_id,x\nT1," + "a" * 200000 + "\nT2,b\nT3,c\n"

        result = parse_csv_text(text)

        assert result.headers == ["train_id", "x"]
        assert result.rows == [{"train_id": "T2", "x": "b"}, {"train_id": "T3", "x": "c"}]
        assert len(result.malformed) == 1
        assert result.malformed[0].line_number == 2
        assert "field larger than field limit" in result.malformed[0].message

    def test_empty_text(self):
        """Test empty input yields nothing."""
        result = parse_csv_text("")

        assert result.headers == []
        assert result.rows == []

    def test_header_only(self):
        """Test a header line with no data rows."""
        result = parse_csv_text("a,b\n")

        assert result.headers == ["a", "b"]
        assert result.rows == []


class TestToCsv:
    """Tests for CSV serialization."""

    def test_column_order_and_missing_values(self):
        """Test headers fix column order; absent keys become empty cells."""
        text = to_csv([{"b": "2", "a": "1"}, {"a": "3"}], ["a", "b"])
        assert text == "a,b\n1,2\n3,\n"

    def test_quoting(self):
        """Test cells with commas, quotes or newlines are quoted."""
        text = to_csv(
            [{"train_id": "T1", "note": 'say "hi", ok', "more": "two\nlines"}],
            ["train_id", "note", "more"],
        )
        assert text == 'train_id,note,more\nT1,"say ""hi"", ok","two\nlines"\n'

    def test_scalar_rendering(self):
        """Test booleans and integral floats render as plain text."""
        text = to_csv([{"a": True, "b": 12500.0, "c": 6.5, "d": None}], ["a", "b", "c", "d"])
        assert text == "a,b,c,d\ntrue,12500,6.5,\n"

    def test_no_rows(self):
        """Test header line is written even without rows."""
        assert to_csv([], ["train_id", "x"]) == "train_id,x\n"

    def test_parses_back(self):
        """Test serialized text parses back to the same cells."""
        rows = [{"train_id": "T1", "note": 'a, "b"'}]
        result = parse_csv_text(to_csv(rows, ["train_id", "note"]))

        assert result.rows == rows


class TestFileExport:
    """Tests for reading and writing files."""

    def test_read_csv_file_with_bom(self, csv_dir):
        """Test UTF-8 BOM files parse cleanly."""
        result = read_csv_file(csv_dir / "mileage_balancing.csv")

        assert result.headers[0] == "Trainset ID"
        assert result.rows[0]["Total KM since last maintenance"] == "12,500"
        assert result.rows[0]["Component Wear Estimate"] == "bogie:72%, brake:70%"

    def test_write_csv(self, tmp_path):
        """Test file is written and metadata returned."""
        output = tmp_path / "out" / "master.csv"
        metadata = write_csv([{"train_id": "T1", "x": 1}], ["train_id", "x"], output)

        assert output.read_text(encoding="utf-8") == "train_id,x\nT1,1\n"
        assert metadata["file_path"] == str(output)
        assert metadata["record_count"] == 1
        assert metadata["column_count"] == 2
        assert metadata["file_size_bytes"] == output.stat().st_size
        assert "written_at" in metadata

    def test_write_parquet(self, tmp_path):
        """Test Parquet export, including mixed-type columns."""
        pq = pytest.importorskip("pyarrow.parquet")

        output = tmp_path / "master.parquet"
        rows = [
            {"train_id": "T1", "score": 9, "mixed": 1},
            {"train_id": "T2", "score": "", "mixed": "n/a"},
        ]
        metadata = write_parquet(rows, ["train_id", "score", "mixed"], output)

        table = pq.read_table(output)
        assert metadata["record_count"] == 2
        assert table.column_names == ["train_id", "score", "mixed"]
        assert table.column("score").to_pylist() == [9, None]
        assert table.column("mixed").to_pylist() == ["1", "n/a"]
