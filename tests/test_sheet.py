"""Tests for sheet table access."""

import pytest
from openpyxl import Workbook, load_workbook

from rowsync.engine.sheet import SheetTable, cell_text
from rowsync.interfaces import InvalidSourceError, RowReadError


@pytest.mark.parametrize('value, expected', [
    (None, ''),
    ('text', 'text'),
    (7, '7'),
    (7.0, '7'),
    (2.5, '2.5'),
])
def test_cell_text(value, expected):
    assert cell_text(value) == expected


class TestHeader:

    def test_trailing_blank_header_cells_are_dropped(self, make_workbook):
        path = make_workbook([['title', ' text ', None, None], ['a', 'b', None, None]])
        table = SheetTable.open(path)
        assert table.header == ['title', 'text']

    def test_empty_sheet(self, tmp_path):
        path = tmp_path / 'empty.xlsx'
        Workbook().save(path)
        with pytest.raises(InvalidSourceError, match='source file empty'):
            SheetTable.open(path).header

    def test_column_index(self, make_workbook):
        table = SheetTable.open(make_workbook([['title', 'text', 'x_status']]))
        assert table.column_index('x_status') == 2

    @pytest.mark.parametrize('header', [['title'], ['title', 'x_status', 'x_status']])
    def test_column_index_needs_exactly_one_match(self, make_workbook, header):
        table = SheetTable.open(make_workbook([header]))
        with pytest.raises(InvalidSourceError):
            table.column_index('x_status')


class TestRows:

    def test_rows_are_numbered_and_padded(self, make_workbook):
        table = SheetTable.open(make_workbook([
            ['title', 'text', 'status'],
            ['a', None, None],
            ['b', 'B', 'ok'],
        ]))
        assert list(table.rows()) == [(2, ['a', '', '']), (3, ['b', 'B', 'ok'])]

    def test_iteration_stops_at_first_empty_row(self, make_workbook):
        table = SheetTable.open(make_workbook([
            ['title'],
            ['a'],
            [None],
            ['after gap'],
        ]))
        assert [n for n, _ in table.rows()] == [2]

    def test_record_maps_header_to_values(self, make_workbook):
        table = SheetTable.open(make_workbook([['title', 'text'], ['a', 'b']]))
        (row_number, values), = table.rows()
        assert table.record(row_number, values) == {'title': 'a', 'text': 'b'}

    def test_value_under_blank_header_is_malformed(self, make_workbook):
        table = SheetTable.open(make_workbook([
            ['title', None, 'text'],
            ['a', 'stray', 'b'],
        ]))
        (row_number, values), = table.rows()
        with pytest.raises(RowReadError) as exc:
            table.record(row_number, values)
        assert exc.value.row_number == 2
        assert 'column B' in exc.value.reason

    def test_value_past_header_is_malformed(self, make_workbook):
        table = SheetTable.open(make_workbook([['title'], ['a', 'extra']]))
        (row_number, values), = table.rows()
        with pytest.raises(RowReadError):
            table.record(row_number, values)


class TestWrite:

    def test_set_cell_and_save_as(self, make_workbook, tmp_path):
        source = make_workbook([['title', 'status'], ['a', None]])
        table = SheetTable.open(source)
        table.set_cell(table.column_letter(1), 2, 'ok')
        result = tmp_path / 'result.xlsx'
        table.save_as(result)
        table.close()

        assert load_workbook(result).active['B2'].value == 'ok'
        assert load_workbook(source).active['B2'].value is None

    def test_column_letter(self):
        assert SheetTable.column_letter(0) == 'A'
        assert SheetTable.column_letter(27) == 'AB'


class TestFormulas:

    def test_rows_read_cached_formula_results(self, make_export):
        table = SheetTable.open(make_export([
            ['title', 'text'],
            [('B2&" (ep)"', 'Hello (ep)'), 'Hello'],
        ]))
        assert list(table.rows()) == [(2, ['Hello (ep)', 'Hello'])]

    def test_saved_result_keeps_formulas(self, make_export, tmp_path, policy):
        table = SheetTable.open(make_export([
            ['title', 'text', 'status'],
            [('B2&" (ep)"', 'Hello (ep)'), 'Hello'],
        ]), policy)
        table.set_cell('C', 2, 'ok')
        result = tmp_path / 'result.xlsx'
        table.save_as(result)
        table.close()

        ws = load_workbook(result).active
        assert ws['A2'].value == '=B2&" (ep)"'
        assert ws['C2'].value == 'ok'
        assert result.stat().st_mode & 0o777 == 0o600
