"""Tests for ranking and viewport clamping."""

import random

import pytest

from conftest import make_process
from sysmon.models import SortKey
from sysmon.ranking import clamp_offset, page_size, rank, viewport


class TestRank:
    """Tests for process ranking."""

    def test_rank_by_cpu_descending(self):
        procs = [
            make_process(1, cpu_percent=5.0),
            make_process(2, cpu_percent=50.0),
            make_process(3, cpu_percent=20.0),
        ]
        assert [p.pid for p in rank(procs, SortKey.CPU)] == [2, 3, 1]

    def test_rank_by_mem_descending(self):
        procs = [
            make_process(1, memory_percent=1.0, cpu_percent=90.0),
            make_process(2, memory_percent=3.0),
            make_process(3, memory_percent=2.0),
        ]
        assert [p.pid for p in rank(procs, SortKey.MEM)] == [2, 3, 1]

    @pytest.mark.parametrize("sort_key", list(SortKey))
    def test_ties_broken_by_ascending_pid(self, sort_key):
        """Test equal metrics always order by pid, whatever the input order."""
        procs = [make_process(pid) for pid in random.sample(range(2, 10000), 200)]
        expected = sorted(p.pid for p in procs)

        for _ in range(20):
            random.shuffle(procs)
            assert [p.pid for p in rank(procs, sort_key)] == expected

    def test_ties_within_groups(self):
        procs = [
            make_process(9, cpu_percent=1.0),
            make_process(4, cpu_percent=2.0),
            make_process(3, cpu_percent=1.0),
            make_process(8, cpu_percent=2.0),
        ]
        assert [p.pid for p in rank(procs, SortKey.CPU)] == [4, 8, 3, 9]

    def test_rank_does_not_modify_input(self):
        procs = [make_process(2, cpu_percent=1.0), make_process(1, cpu_percent=2.0)]
        rank(procs, SortKey.CPU)
        assert [p.pid for p in procs] == [2, 1]


class TestViewport:
    """Tests for scroll offset clamping."""

    @pytest.mark.parametrize("total", [0, 1, 4, 5, 6, 100])
    @pytest.mark.parametrize("requested", [-10, 0, 1, 3, 50, 1000])
    def test_offset_always_in_range(self, total, requested):
        offset = clamp_offset(requested, total, 5)
        assert 0 <= offset <= max(0, total - 5)

    def test_empty_list_forces_zero(self):
        assert clamp_offset(42, 0, 10) == 0

    def test_offset_reclamped_when_list_shrinks(self):
        """Test an offset valid for a long list is pulled back for a shorter one."""
        assert clamp_offset(90, 100, 10) == 90
        assert clamp_offset(90, 30, 10) == 20

    def test_viewport_slice(self):
        ranked = [make_process(pid) for pid in range(1, 11)]
        view = viewport(ranked, 3, 4)

        assert view.offset == 3
        assert view.total == 10
        assert [p.pid for p in view.rows] == [4, 5, 6, 7]

    def test_viewport_clamps_past_end(self):
        ranked = [make_process(pid) for pid in range(1, 11)]
        view = viewport(ranked, 50, 4)

        assert view.offset == 6
        assert [p.pid for p in view.rows] == [7, 8, 9, 10]

    def test_viewport_shorter_than_window(self):
        ranked = [make_process(1), make_process(2)]
        view = viewport(ranked, 1, 10)

        assert view.offset == 0
        assert len(view.rows) == 2

    def test_page_size(self):
        assert page_size(20) == 19
        assert page_size(1) == 1
        assert page_size(0) == 1
