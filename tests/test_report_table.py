#!/usr/bin/env python3
"""Unit tests for column specs and the report table engine."""

from datetime import timedelta

import pytest

from application.columns import (
    RenderContext,
    Strategy,
    WidthPolicy,
    build_column_spec,
    build_column_specs,
    classify_column,
    vague_duration,
)
from application.report_table import ReportTableEngine, allocate_widths, truncate_with_count
from application.selection import Selection
from core import Annotation
from util.display import display_width

from conftest import NOW, make_record


class TestClassify:
    @pytest.mark.parametrize(
        "column,strategy",
        [
            ("id", Strategy.RAW),
            ("description", Strategy.RAW),
            ("due", Strategy.RAW),
            ("entry.age", Strategy.AGE),
            ("due.relative", Strategy.COUNTDOWN),
            ("until.remaining", Strategy.COUNTDOWN),
            ("scheduled.countdown", Strategy.COUNTDOWN),
            ("tags.count", Strategy.COUNT),
            ("depends.count", Strategy.COUNT),
            ("description.count", Strategy.COUNT),
            ("description.truncated_count", Strategy.COUNT),
            ("estimate", Strategy.RAW),
            ("estimate.weird", Strategy.UNKNOWN),
            ("due.bogus", Strategy.UNKNOWN),
            ("project.count", Strategy.UNKNOWN),
        ],
    )
    def test_strategy_bound_at_build_time(self, column, strategy):
        assert classify_column(column)[0] == strategy
        assert build_column_spec(column).strategy == strategy

    def test_unknown_renders_empty(self):
        spec = build_column_spec("due.bogus")
        record = make_record(1, due=NOW)
        assert spec.value(record, RenderContext(now=NOW)) == ""

    def test_uda_column_reads_attribute(self):
        spec = build_column_spec("estimate")
        record = make_record(1, udas={"estimate": "3h"})
        assert spec.value(record, RenderContext(now=NOW)) == "3h"
        assert spec.value(make_record(2), RenderContext(now=NOW)) == ""

    def test_labels_and_policies(self):
        specs = build_column_specs(
            ["id", "description", "project"],
            labels=["#"],
            policies={"project": WidthPolicy.FIXED},
            widths={"project": 6},
        )
        assert [s.label for s in specs] == ["#", "Description", "Project"]
        assert specs[1].policy == WidthPolicy.TRUNCATE
        assert specs[2].policy == WidthPolicy.FIXED
        assert specs[2].width == 6

    def test_fixed_without_width_falls_back_to_shrink(self):
        assert build_column_spec("project", policy=WidthPolicy.FIXED).policy == WidthPolicy.SHRINK


class TestDerivedValues:
    def test_vague_duration_units(self):
        assert vague_duration(30) == "30s"
        assert vague_duration(-90) == "-1min"
        assert vague_duration(3 * 3600) == "3h"
        assert vague_duration(2 * 86400) == "2d"
        assert vague_duration(21 * 86400) == "3w"
        assert vague_duration(120 * 86400) == "4mo"
        assert vague_duration(800 * 86400) == "2y"

    def test_age_and_countdown_follow_the_clock(self):
        record = make_record(1, entry=NOW - timedelta(seconds=30), due=NOW + timedelta(seconds=30))
        age = build_column_spec("entry.age")
        countdown = build_column_spec("due.relative")
        first = RenderContext(now=NOW)
        later = RenderContext(now=NOW + timedelta(seconds=1))
        assert age.value(record, first) == "30s"
        assert age.value(record, later) == "31s"
        assert countdown.value(record, first) == "30s"
        assert countdown.value(record, later) == "29s"

    def test_engine_is_deterministic_for_a_given_clock(self):
        records = [make_record(n) for n in range(1, 4)]
        specs = build_column_specs(["id", "entry.age", "description"])
        engine = ReportTableEngine()
        a = engine.compute(records, specs, Selection(), 80, now=NOW)
        b = engine.compute(records, specs, Selection(), 80, now=NOW)
        c = engine.compute(records, specs, Selection(), 80, now=NOW + timedelta(days=1))
        assert a.rows == b.rows
        assert a.rows != c.rows

    def test_counts(self):
        record = make_record(
            1,
            tags=frozenset({"home", "next"}),
            annotations=(Annotation(NOW, "note"),),
        )
        ctx = RenderContext(now=NOW)
        assert build_column_spec("tags.count").value(record, ctx) == "2"
        assert build_column_spec("description.count").value(record, ctx) == "task 1 [1]"

    def test_depends_shows_working_ids(self):
        blocker = make_record(2)
        record = make_record(1, depends=(blocker.uuid,))
        ctx = RenderContext(now=NOW, records_by_uuid={blocker.uuid: blocker})
        assert build_column_spec("depends").value(record, ctx) == "2"


class TestWidths:
    def test_everything_fits(self):
        specs = build_column_specs(["id", "description"])
        assert allocate_widths(specs, [2, 10], 40) == [2, 10]

    def test_fixed_first_and_rest_shared(self):
        specs = build_column_specs(
            ["project", "description"], policies={"project": WidthPolicy.FIXED}, widths={"project": 5}
        )
        widths = allocate_widths(specs, [20, 100], 30)
        assert widths[0] == 5
        assert sum(widths) + 1 == 30

    def test_shrink_never_below_min(self):
        specs = build_column_specs(["project", "description"])
        widths = allocate_widths(specs, [10, 200], 40, min_width=6)
        assert widths[0] >= 6
        assert sum(widths) + 1 <= 40

    def test_truncate_with_count(self):
        text = "a" * 30
        out = truncate_with_count(text, 12)
        assert display_width(out) <= 12
        kept = out.split("…")[0]
        assert out.endswith(f"({30 - len(kept)})")

    def test_truncate_with_count_fits(self):
        assert truncate_with_count("short", 10) == "short"
        assert truncate_with_count("anything", 0) == ""


class TestEngine:
    def test_rows_in_input_order_with_marks(self):
        records = [make_record(n) for n in (3, 1, 2)]
        specs = build_column_specs(["id", "description"])
        selection = Selection(cursor=1, cursor_uuid=records[1].uuid, marked={records[2].uuid, "gone"})
        view = ReportTableEngine().compute(records, specs, selection, 40, now=NOW)
        assert view.uuids == tuple(r.uuid for r in records)
        assert view.marked == frozenset({records[2].uuid})
        assert view.cursor == 1
        assert all(display_width(view.line(i)) <= 40 for i in range(len(view.rows)))

    def test_hides_empty_columns(self):
        records = [make_record(1)]
        specs = build_column_specs(["id", "project", "description"])
        view = ReportTableEngine(hide_empty_columns=True).compute(records, specs, Selection(), 40, now=NOW)
        assert view.columns == ("id", "description")
        shown = ReportTableEngine(hide_empty_columns=False).compute(records, specs, Selection(), 40, now=NOW)
        assert "project" in shown.columns

    def test_description_truncated_in_narrow_view(self):
        records = [make_record(1, "a rather long description that cannot fit")]
        specs = build_column_specs(["id", "description"])
        view = ReportTableEngine().compute(records, specs, Selection(), 20, now=NOW)
        assert view.rows[0].cells[1].rstrip().endswith("…")
        assert display_width(view.line(0)) == 20

    def test_virtual_tags_exposed_for_styling(self):
        records = [make_record(1, due=NOW - timedelta(days=1)), make_record(2)]
        view = ReportTableEngine().compute(records, build_column_specs(["id"]), Selection(), 20, now=NOW)
        assert "OVERDUE" in view.virtual[records[0].uuid]
        assert "OVERDUE" not in view.virtual[records[1].uuid]

    def test_empty_snapshot(self):
        view = ReportTableEngine().compute([], build_column_specs(["id"]), Selection(), 20, now=NOW)
        assert view.rows == ()
        assert view.cursor == 0
