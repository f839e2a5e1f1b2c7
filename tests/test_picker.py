import re

import pytest

from witshe.picker import (
    Key,
    PickResult,
    Picker,
    PickerItem,
    filter_items,
    pick,
    render,
    truncate,
)

ANSI = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def plain(text):
    return ANSI.sub("", text)


def sample_items():
    return [
        PickerItem(label="● alpha", hint="[web]", desc="Login page"),
        PickerItem(label="✓ beta", hint="", desc=None, is_done=True),
        PickerItem(label="● gamma", hint="[api]", desc="Rate limits"),
        PickerItem(label="✗ delta", hint="", desc="Docs", is_done=True),
    ]


def test_filter_puts_active_before_done():
    assert filter_items(sample_items(), "") == [0, 2, 1, 3]


def test_filter_is_case_insensitive_over_label_hint_and_desc():
    items = sample_items()
    assert filter_items(items, "ALPHA") == [0]
    assert filter_items(items, "api") == [2]
    assert filter_items(items, "docs") == [3]


def test_filter_without_matches_is_empty():
    assert filter_items(sample_items(), "zzz") == []


def test_filter_result_is_subset_of_all():
    items = sample_items()
    everything = set(filter_items(items, ""))
    for query in ("a", "e", "[", "login"):
        assert set(filter_items(items, query)) <= everything


def test_truncate():
    assert truncate("short", 40) == "short"
    assert truncate("x" * 50, 40) == "x" * 40
    assert len(truncate("y" * 41, 40)) == 40


def test_render_empty_search_placeholder_and_title():
    text = plain(render("witshe", sample_items(), [0, 2, 1, 3], 0, ""))
    assert "witshe" in text
    assert "╭─ ⌕ Search…" in text
    assert "↑↓ select · enter switch · type to search · esc quit" in text


def test_render_shows_search_text():
    text = plain(render("witshe", sample_items(), [0], 0, "alp"))
    assert "╭─ ⌕ alp" in text
    assert "Search…" not in text


def test_render_no_items_messages():
    assert "no threads" in plain(render("t", [], [], 0, ""))
    assert "no threads matching search" in plain(render("t", sample_items(), [], 0, "q"))


def test_render_marks_selected_row():
    items = sample_items()
    text = plain(render("t", items, [0, 2, 1, 3], 1, ""))
    selected_lines = [ln for ln in text.split("\r\n") if "❯" in ln]
    assert len(selected_lines) == 1
    assert "gamma" in selected_lines[0]


def test_render_done_section_header_only_after_active_rows():
    items = sample_items()
    with_active = plain(render("t", items, [0, 2, 1, 3], 0, ""))
    assert "  done" in with_active
    only_done = plain(render("t", items, [1, 3], 0, ""))
    assert "  done" not in only_done.replace("  done\r\n", "") or "  done" not in only_done
    assert [ln.strip() for ln in only_done.split("\r\n")].count("done") == 0


def test_render_truncates_description():
    items = [PickerItem(label="x", desc="d" * 60)]
    text = plain(render("t", items, [0], 0, ""))
    assert "d" * 40 in text
    assert "d" * 41 not in text


def test_render_limits_visible_rows():
    items = [PickerItem(label=f"item{i}") for i in range(10)]
    text = plain(render("t", items, list(range(10)), 0, ""))
    assert "item7" in text
    assert "item8" not in text
    assert "... 2 more" in text


def test_render_lines_end_with_crlf():
    text = render("t", sample_items(), [0, 2, 1, 3], 0, "")
    assert text.endswith("\r\n")
    assert "\n" not in text.replace("\r\n", "")


def test_picker_render_tracks_line_count():
    picker = Picker("t", sample_items())
    text = picker.render()
    assert picker.prev_lines == text.count("\r\n")


def test_down_and_up_stay_in_bounds():
    picker = Picker("t", sample_items())
    picker.handle_key(Key.UP)
    assert picker.selected == 0
    for _ in range(10):
        picker.handle_key(Key.DOWN)
    assert picker.selected == len(sample_items()) - 1
    picker.handle_key(Key.UP)
    assert picker.selected == len(sample_items()) - 2


def test_enter_picks_by_original_index():
    picker = Picker("t", sample_items())
    picker.handle_key(Key.DOWN)
    picker.handle_key(Key.DOWN)
    assert picker.handle_key(Key.ENTER) is True
    assert picker.finished
    assert picker.result == PickResult(index=1, is_done=True)


def test_enter_without_match_does_not_finish():
    picker = Picker("t", sample_items())
    for ch in "zzz":
        picker.handle_key(ch)
    picker.handle_key(Key.ENTER)
    assert picker.finished is False
    assert picker.result is None


def test_typing_filters_and_resets_selection():
    picker = Picker("t", sample_items())
    picker.handle_key(Key.DOWN)
    picker.handle_key("g")
    assert picker.search == "g"
    assert picker.selected == 0
    picker.handle_key("a")
    picker.handle_key("m")
    assert picker.filtered() == [2]
    picker.handle_key(Key.ENTER)
    assert picker.result == PickResult(index=2, is_done=False)


def test_backspace_removes_last_char():
    picker = Picker("t", sample_items())
    picker.handle_key("a")
    picker.handle_key("b")
    picker.handle_key(Key.BACKSPACE)
    assert picker.search == "a"
    picker.handle_key(Key.BACKSPACE)
    picker.handle_key(Key.BACKSPACE)
    assert picker.search == ""


def test_escape_clears_search_then_cancels():
    picker = Picker("t", sample_items())
    picker.handle_key("x")
    picker.handle_key(Key.ESC)
    assert picker.search == ""
    assert picker.finished is False
    picker.handle_key(Key.ESC)
    assert picker.finished is True
    assert picker.result is None


def test_ctrl_c_cancels_even_with_search():
    picker = Picker("t", sample_items())
    picker.handle_key("a")
    assert picker.handle_key(Key.CTRL_C) is True
    assert picker.finished is True
    assert picker.result is None


@pytest.mark.parametrize("key", [None, ""])
def test_unknown_keys_do_not_redraw(key):
    picker = Picker("t", sample_items())
    assert picker.handle_key(key) is False
    assert picker.search == ""
    assert picker.selected == 0


def test_pick_with_no_items_returns_none():
    assert pick("t", []) is None