import pytest

from conftest import make_record
from services.tables.registry import CONTENT_QUEUE, describe
from services.tables.schema import ColumnDescriptor, ColumnType, TableKind, TableSchema
from services.tables.view_engine import (
    apply_facets,
    filter_records,
    page_window,
    paginate,
    render_table,
    resolve_full_text,
    sort_records,
)
from services.tables.view_state import SortDirection, ViewState

SCHEMA = TableSchema(
    kind=TableKind.CONTENT_QUEUE,
    remote_name="content_queue",
    count_label="items",
    columns=(
        ColumnDescriptor("Topic", "Topic", ColumnType.TEXT, sticky=True),
        ColumnDescriptor("Reach", "Reach", ColumnType.NUMBER),
        ColumnDescriptor("Posted", "Posted", ColumnType.DATE),
    ),
)


def _rows(n: int):
    return [make_record(f"rec{i:03d}", Topic=f"Topic {i}", Reach=i) for i in range(1, n + 1)]


def test_filter_matches_any_schema_column_case_insensitively():
    records = [
        make_record("rec1", Topic="Budget Tips", Reach=10),
        make_record("rec2", Topic="Meal prep", Reach=250),
        make_record("rec3", Topic="Other", Hidden="budget"),
    ]
    assert [r.id for r in filter_records(records, SCHEMA, "budget")] == ["rec1"]
    assert [r.id for r in filter_records(records, SCHEMA, "250")] == ["rec2"]
    assert filter_records(records, SCHEMA, "") == records


def test_filter_is_idempotent():
    records = _rows(30)
    once = filter_records(records, SCHEMA, "topic 1")
    assert filter_records(once, SCHEMA, "topic 1") == once


def test_number_sort_puts_non_numeric_last():
    records = [
        make_record("a", Reach="n/a"),
        make_record("b", Reach=5),
        make_record("c", Reach="12"),
        make_record("d", Reach=None),
    ]
    ordered = sort_records(records, SCHEMA, "Reach", SortDirection.ASC)
    assert [r.id for r in ordered] == ["d", "b", "c", "a"]


def test_date_sort_uses_epoch_with_invalid_as_zero():
    records = [
        make_record("a", Posted="2024-05-01"),
        make_record("b", Posted="garbage"),
        make_record("c", Posted="2023-01-01"),
    ]
    ordered = sort_records(records, SCHEMA, "Posted", SortDirection.DESC)
    assert [r.id for r in ordered] == ["a", "c", "b"]


def test_sort_is_stable_and_reversible_for_distinct_keys():
    records = [make_record(f"rec{i}", Topic=t) for i, t in enumerate(["b", "a", "c", "a"])]
    asc = sort_records(records, SCHEMA, "Topic", SortDirection.ASC)
    assert [r.id for r in asc] == ["rec1", "rec3", "rec0", "rec2"]

    distinct = [make_record(f"rec{i}", Topic=t) for i, t in enumerate(["b", "a", "c"])]
    asc = sort_records(distinct, SCHEMA, "Topic", SortDirection.ASC)
    desc = sort_records(distinct, SCHEMA, "Topic", SortDirection.DESC)
    assert desc == list(reversed(asc))


def test_unknown_sort_column_keeps_order():
    records = _rows(3)
    assert sort_records(records, SCHEMA, "Nope", SortDirection.ASC) == records


def test_second_page_of_twenty_five():
    page = render_table(SCHEMA, _rows(25), ViewState(page=2, page_size=20))
    assert len(page.rows) == 5
    assert page.pagination.total_pages == 2
    assert page.pagination.has_prev is True
    assert page.pagination.has_next is False
    assert page.pagination.range_label == "Showing 21–25 of 25"
    assert page.count_label == "25 items"


def test_page_beyond_range_is_clamped():
    page = render_table(SCHEMA, _rows(5), ViewState(page=9, page_size=2))
    assert page.pagination.page == 3
    assert page.view_state.page == 3
    assert [row.record_id for row in page.rows] == ["rec005"]


def test_pagination_partitions_records():
    records = _rows(23)
    seen = []
    for page_number in range(1, 4):
        chunk, pagination = paginate(records, page_number, 10)
        seen.extend(chunk)
        assert len(chunk) <= 10
    assert seen == records


def test_empty_pagination_reports_one_page():
    chunk, pagination = paginate([], 1, 20)
    assert chunk == []
    assert pagination.total_pages == 1
    assert pagination.start_item == 0
    assert pagination.end_item == 0


def test_empty_states_distinguish_no_data_from_no_results():
    no_data = render_table(SCHEMA, [], ViewState())
    assert no_data.empty_state.kind == "no_data"

    no_results = render_table(SCHEMA, _rows(3), ViewState(search="zzz"))
    assert no_results.empty_state.kind == "no_results"
    assert no_results.total_records == 3
    assert no_results.filtered_records == 0

    assert render_table(SCHEMA, _rows(3), ViewState()).empty_state is None


@pytest.mark.parametrize(
    "page, total, expected",
    [
        (1, 3, [1, 2, 3]),
        (1, 20, [1, 2, 3, 4, 5, 6, 7]),
        (10, 20, [7, 8, 9, 10, 11, 12, 13]),
        (20, 20, [14, 15, 16, 17, 18, 19, 20]),
    ],
)
def test_page_window(page, total, expected):
    assert page_window(page, total) == expected


def test_header_marks_sorted_column():
    page = render_table(
        SCHEMA, _rows(2), ViewState(sort_column="Reach", sort_direction=SortDirection.DESC)
    )
    reach = next(h for h in page.header if h.key == "Reach")
    topic = next(h for h in page.header if h.key == "Topic")
    assert reach.sorted and reach.indicator == "▼"
    assert not topic.sorted and topic.indicator == ""
    assert [row.record_id for row in page.rows] == ["rec002", "rec001"]


def test_render_is_deterministic():
    records = _rows(12)
    state = ViewState(page=2, page_size=5, search="topic", sort_column="Topic")
    assert render_table(SCHEMA, records, state) == render_table(SCHEMA, records, state)


def test_full_text_of_expandable_cell():
    long_caption = "word " * 40
    records = [make_record("recQ1", Caption_Text=long_caption)]
    page = render_table(CONTENT_QUEUE, records, ViewState())
    assert page.expandable_refs == ["recQ1:Caption_Text"]
    assert resolve_full_text(CONTENT_QUEUE, records, "recQ1:Caption_Text") == long_caption
    assert resolve_full_text(CONTENT_QUEUE, records, "recQ1:Unknown") is None
    assert resolve_full_text(CONTENT_QUEUE, records, "recX:Caption_Text") is None
    assert resolve_full_text(CONTENT_QUEUE, records, "no-separator") is None


def test_describe_rejects_unknown_kind():
    assert describe("pin_analysis").remote_name == "Pin Analysis"
    with pytest.raises(ValueError):
        describe("nope")


def test_duplicate_column_keys_fail_fast():
    with pytest.raises(ValueError):
        TableSchema(
            kind=TableKind.PIN_ANALYSIS,
            remote_name="Pin Analysis",
            count_label="analyses",
            columns=(ColumnDescriptor("A", "A"), ColumnDescriptor("A", "Again")),
        )


def _queue():
    return [
        make_record("recQ1", Topic="Budget binder", Status="Posted", Platform="Pinterest"),
        make_record("recQ2", Topic="Budget apps", Status="Queued", Platform="Pinterest"),
        make_record("recQ3", Topic="Meal prep", Status="Posted", Platform="Instagram"),
        make_record("recQ4", Topic="Posted recap", Status="Ready", Platform="Pinterest"),
    ]


def test_facets_narrow_before_search():
    state = ViewState().set_filter("Status", "Posted").set_search("budget")
    page = render_table(CONTENT_QUEUE, _queue(), state)
    assert [row.record_id for row in page.rows] == ["recQ1"]
    assert page.filtered_records == 1
    assert page.view_state.filters == (("Status", "Posted"),)


def test_facet_values_match_exactly():
    records = _queue()
    assert [r.id for r in apply_facets(records, [("Status", "Post")])] == []
    # search alone matches "Posted recap" through its topic too
    assert [r.id for r in filter_records(records, CONTENT_QUEUE, "posted")] == ["recQ1", "recQ3", "recQ4"]
    assert [r.id for r in apply_facets(records, [("Status", "Posted"), ("Platform", "Pinterest")])] == ["recQ1"]


def test_facet_groups_count_the_whole_table():
    state = ViewState().set_filter("Platform", "Instagram")
    page = render_table(CONTENT_QUEUE, _queue(), state)
    status = next(g for g in page.facets if g.column == "Status")
    assert status.total == 4
    assert [(o.value, o.count) for o in status.options] == [("Posted", 2), ("Queued", 1), ("Ready", 1)]
    platform = next(g for g in page.facets if g.column == "Platform")
    assert platform.selected == "Instagram"
    assert [g.column for g in page.facets] == list(CONTENT_QUEUE.facets)


def test_filtered_out_table_reports_no_results():
    page = render_table(CONTENT_QUEUE, _queue(), ViewState().set_filter("Status", "Failed"))
    assert page.empty_state.kind == "no_results"
    assert "filters" in page.empty_state.title


def test_no_results_message_escapes_search_text():
    page = render_table(SCHEMA, _rows(2), ViewState(search='<img src=x onerror="y">'))
    assert "<img" not in page.empty_state.message
    assert "&lt;img" in page.empty_state.message


def test_facets_must_be_columns():
    with pytest.raises(ValueError):
        TableSchema(
            kind=TableKind.CONTENT_QUEUE,
            remote_name="content_queue",
            count_label="items",
            columns=(ColumnDescriptor("Status", "Status", ColumnType.SELECT),),
            facets=("Platform",),
        )
