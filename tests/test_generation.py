import io
import re

from crunch_tool import (
    DIGITS,
    Progress,
    build_config,
    count,
    generate_words,
    has_adjacent_repeat,
    odometer,
)


def run(config):
    sink = io.StringIO()
    considered, written = generate_words(config, sink)
    return sink.getvalue(), considered, written


def test_odometer_leftmost_position_changes_slowest():
    assert list(odometer(["ab", "-", "01"])) == ["a-0", "a-1", "b-0", "b-1"]


def test_odometer_without_positions_yields_empty_string_once():
    assert list(odometer([])) == [""]


def test_range_mode_order_and_count():
    config = build_config(1, 2, "ab")
    out, considered, written = run(config)
    assert out.splitlines() == ["a", "b", "aa", "ab", "ba", "bb"]
    assert considered == written == count(config) == 6


def test_range_mode_follows_charset_order():
    out, _, _ = run(build_config(2, 2, "ba"))
    assert out.splitlines() == ["bb", "ba", "ab", "aa"]


def test_range_mode_without_repeats():
    config = build_config(2, 2, "ab", no_duplicates=True)
    out, considered, written = run(config)
    assert out == "ab\nba\n"
    assert (considered, written) == (4, 2)
    assert written == count(config)


def test_template_mode_digits_and_literals():
    config = build_config(1, 1, "xy", template="%%-@@")
    out, _, written = run(config)
    lines = out.splitlines()
    assert written == len(lines) == count(config) == 400
    assert lines[0] == "00-xx"
    assert lines[-1] == "99-yy"
    assert all(re.fullmatch(r"\d\d-[xy]{2}", line) for line in lines)
    assert len(set(lines)) == 400


def test_template_mode_checks_literals_for_repeats():
    out, considered, written = run(build_config(1, 1, "ab", template="a@", no_duplicates=True))
    assert out == "ab\n"
    assert (considered, written) == (2, 1)


def test_count_matches_lines_emitted():
    configs = [
        build_config(1, 4, "ab1"),
        build_config(1, 4, "ab1", no_duplicates=True),
        build_config(2, 3, "a12-", no_duplicates=True),
        build_config(1, 1, "ab-", template="@-@%", no_duplicates=True),
        build_config(1, 1, "a1", template="@1@@", no_duplicates=True),
        build_config(1, 1, "xyz", template="%@@x", no_duplicates=True),
        build_config(1, 1, "xyz", template="%@@x"),
    ]
    for config in configs:
        out, _, written = run(config)
        assert written == out.count("\n") == count(config), config


def test_no_adjacent_letters_repeat_but_digits_may():
    out, _, _ = run(build_config(1, 3, "a1", no_duplicates=True))
    lines = out.splitlines()
    assert not any(has_adjacent_repeat(line) for line in lines)
    assert "111" in lines
    assert "aa" not in lines


def test_template_lines_keep_length_and_literals():
    template = "x@%-@"
    out, _, _ = run(build_config(1, 1, "ab", template=template, no_duplicates=True))
    for line in out.splitlines():
        assert len(line) == len(template)
        assert line[0] == "x" and line[3] == "-"
        assert line[2] in DIGITS


def test_generation_is_repeatable():
    config = build_config(1, 3, "abc", no_duplicates=True)
    assert run(config)[0] == run(config)[0]


def test_progress_ticks_once_per_candidate():
    config = build_config(2, 2, "ab", no_duplicates=True)
    stream = io.StringIO()
    progress = Progress(4, stream)
    generate_words(config, io.StringIO(), progress)
    assert progress.current == 4
    assert stream.getvalue().splitlines() == ["25% done", "50% done", "75% done", "100% done"]


def test_progress_reports_in_coarse_steps():
    stream = io.StringIO()
    progress = Progress(1000, stream)
    progress.start()
    for _ in range(1000):
        progress.increment()
    progress.finish()
    lines = stream.getvalue().splitlines()
    assert lines[0] == "0% done"
    assert lines[-1] == "100% done"
    assert len(lines) == 21


class FailingSink:
    def __init__(self, after):
        self.after = after
        self.lines = 0

    def write(self, text):
        if self.lines >= self.after:
            raise OSError(28, "No space left on device")
        self.lines += 1


def test_sink_error_aborts_generation():
    sink = FailingSink(after=3)
    progress = Progress(16, io.StringIO())
    try:
        generate_words(build_config(4, 4, "ab"), sink, progress)
    except OSError as exc:
        assert exc.errno == 28
    else:
        raise AssertionError("sink error was swallowed")
    assert sink.lines == 3
    assert progress.current == 3
