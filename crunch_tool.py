#!/usr/bin/env python3
"""Crunch-style wordlist generator: every string over a charset or template."""

import argparse
import os
import sys
import time
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, TextIO, Tuple


DIGITS = "0123456789"
CHARSET_SLOT = "@"
DIGIT_SLOT = "%"
MAX_TOTAL = (1 << 64) - 1
PROGRESS_STEP = 5
KB = 1024
MB = KB * 1024
GB = MB * 1024


class ConfigError(ValueError):
    """Configuration that cannot be enumerated."""


class Config(NamedTuple):
    min_len: int
    max_len: int
    charset: str
    template: Optional[str] = None
    no_duplicates: bool = False


class Progress:
    """Prints coarse percentage milestones for candidates considered."""

    def __init__(self, total: int, stream: TextIO, step: int = PROGRESS_STEP) -> None:
        self.total = total
        self.stream = stream
        self.step = step
        self.current = 0
        self.last_percentage = 0

    def _report(self, percentage: int) -> None:
        print(f"{percentage}% done", file=self.stream, flush=True)

    def start(self) -> None:
        self._report(0)

    def increment(self) -> None:
        self.current += 1
        if not self.total:
            return
        percentage = self.current * 100 // self.total
        if percentage >= self.last_percentage + self.step:
            self.last_percentage = percentage
            self._report(percentage)

    def finish(self) -> None:
        if self.last_percentage < 100:
            self.last_percentage = 100
            self._report(100)


def has_adjacent_repeat(word: str) -> bool:
    """True if two neighbouring characters are equal and not decimal digits."""
    for left, right in zip(word, word[1:]):
        if left == right and left not in DIGITS:
            return True
    return False


def template_alphabets(template: str, charset: str) -> List[str]:
    alphabets: List[str] = []
    for ch in template:
        if ch == CHARSET_SLOT:
            alphabets.append(charset)
        elif ch == DIGIT_SLOT:
            alphabets.append(DIGITS)
        else:
            alphabets.append(ch)
    return alphabets


def candidate_alphabets(config: Config) -> Iterator[List[str]]:
    """Yield the per-position alphabets of each length class, in output order."""
    if config.template is not None:
        yield template_alphabets(config.template, config.charset)
        return
    for length in range(config.min_len, config.max_len + 1):
        yield [config.charset] * length


def _checked(value: int) -> int:
    if value > MAX_TOTAL:
        raise ConfigError(f"enumeration exceeds {MAX_TOTAL} candidates; narrow the charset or length")
    return value


def count_repeat_free(alphabets: Sequence[str]) -> int:
    """Count renderings of ``alphabets`` that pass the duplicate filter.

    ``tails`` maps the last rendered character to the number of surviving
    prefixes ending in it. A non-digit cannot follow itself, a digit can.
    """
    tails: Dict[str, int] = {"": 1}
    for alphabet in alphabets:
        prefixes = sum(tails.values())
        step: Dict[str, int] = {}
        for ch in alphabet:
            blocked = 0 if ch in DIGITS else tails.get(ch, 0)
            step[ch] = _checked(prefixes - blocked)
        tails = step
    return sum(tails.values())


def _range_repeat_free(charset: str, min_len: int, max_len: int) -> List[Tuple[int, int]]:
    digits = sum(1 for ch in charset if ch in DIGITS)
    others = len(charset) - digits
    ends_digit, ends_other = digits, others
    counts: List[Tuple[int, int]] = []
    for length in range(1, max_len + 1):
        if length >= min_len:
            counts.append((length, _checked(ends_digit + ends_other)))
        ends_digit, ends_other = (
            digits * (ends_digit + ends_other),
            others * ends_digit + (others - 1) * ends_other,
        )
    return counts


def count_by_length(config: Config) -> List[Tuple[int, int]]:
    """Exact number of emitted lines for each output length."""
    if config.template is not None:
        if config.no_duplicates:
            total = count_repeat_free(template_alphabets(config.template, config.charset))
        else:
            slots = config.template.count(CHARSET_SLOT)
            digit_slots = config.template.count(DIGIT_SLOT)
            total = len(config.charset) ** slots * len(DIGITS) ** digit_slots
        return [(len(config.template), _checked(total))]
    if config.no_duplicates:
        counts = _range_repeat_free(config.charset, config.min_len, config.max_len)
    else:
        size = len(config.charset)
        counts = [(length, _checked(size ** length)) for length in range(config.min_len, config.max_len + 1)]
    running = 0
    for _, value in counts:
        running = _checked(running + value)
    return counts


def count(config: Config) -> int:
    return sum(value for _, value in count_by_length(config))


def candidate_total(config: Config) -> int:
    """Candidates considered, i.e. the count with the duplicate filter off."""
    return count(config._replace(no_duplicates=False))


def estimate_bytes(config: Config) -> int:
    return sum((length + 1) * value for length, value in count_by_length(config))


def format_size(num_bytes: int) -> str:
    if num_bytes >= GB:
        return f"{num_bytes / GB:.2f} GB"
    if num_bytes >= MB:
        return f"{num_bytes / MB:.2f} MB"
    if num_bytes >= KB:
        return f"{num_bytes / KB:.2f} KB"
    return f"{num_bytes} B"


def build_config(
    min_len: int,
    max_len: int,
    charset: str,
    template: Optional[str] = None,
    no_duplicates: bool = False,
) -> Config:
    if not charset:
        raise ConfigError("charset must not be empty.")
    repeated = sorted({ch for ch in charset if charset.count(ch) > 1})
    if repeated:
        raise ConfigError(f"charset repeats symbol(s): {''.join(repeated)!r}")
    if template is not None:
        if CHARSET_SLOT not in template and DIGIT_SLOT not in template:
            raise ConfigError(f"template must contain at least one '{CHARSET_SLOT}' or '{DIGIT_SLOT}'.")
    else:
        if min_len < 1:
            raise ConfigError("minimum length must be at least 1.")
        if max_len < min_len:
            raise ConfigError("maximum length cannot be smaller than minimum length.")
    config = Config(min_len, max_len, charset, template, no_duplicates)
    candidate_total(config)
    return config


def odometer(alphabets: Sequence[str]) -> Iterator[str]:
    """Yield every rendering of ``alphabets``, leftmost position changing slowest."""
    if not all(alphabets):
        return
    indices = [0] * len(alphabets)
    slots = [alphabet[0] for alphabet in alphabets]
    while True:
        yield "".join(slots)
        pos = len(slots) - 1
        while pos >= 0:
            indices[pos] += 1
            if indices[pos] < len(alphabets[pos]):
                slots[pos] = alphabets[pos][indices[pos]]
                break
            indices[pos] = 0
            slots[pos] = alphabets[pos][0]
            pos -= 1
        else:
            return


def generate_words(config: Config, sink: TextIO, progress: Optional[Progress] = None) -> Tuple[int, int]:
    """Write every surviving candidate to ``sink``; return (considered, written)."""
    considered = 0
    written = 0
    for alphabets in candidate_alphabets(config):
        for word in odometer(alphabets):
            considered += 1
            if not (config.no_duplicates and has_adjacent_repeat(word)):
                sink.write(word + "\n")
                written += 1
            if progress is not None:
                progress.increment()
    return considered, written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crunch-style wordlist generator.",
        add_help=True,
    )
    parser.add_argument("min_len", type=int, help="Minimum length of generated words.")
    parser.add_argument("max_len", type=int, help="Maximum length of generated words.")
    parser.add_argument("charset", help="Characters to use in generation.")
    parser.add_argument(
        "-t",
        "--template",
        help="Template for generation (@ for charset, %% for digits, anything else is literal).",
    )
    parser.add_argument("-o", "--output", help="Output file (default: standard output).")
    parser.add_argument(
        "--no-duplicates",
        action="store_true",
        help="Avoid consecutive duplicate characters (except digits).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Skip the size estimate, progress and summary.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args.min_len, args.max_len, args.charset, args.template, args.no_duplicates)
        total = count(config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    progress = None
    if not args.quiet:
        print(
            f"Will create approx: {format_size(estimate_bytes(config))} ({total} combinations)",
            file=sys.stderr,
        )
        progress = Progress(candidate_total(config), sys.stderr)
        progress.start()

    start_time = time.time()
    try:
        if args.output:
            with open(args.output, "w", encoding="utf-8", newline="") as sink:
                considered, written = generate_words(config, sink, progress)
        else:
            considered, written = generate_words(config, sys.stdout, progress)
            sys.stdout.flush()
    except BrokenPipeError:
        # Reader went away (e.g. piped into head); silence the flush at exit.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except OSError as exc:
        print(f"Filesystem error: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.time() - start_time

    if progress is not None:
        progress.finish()
        print("\nGeneration complete:", file=sys.stderr)
        print(f"- candidates considered: {considered}", file=sys.stderr)
        print(f"- lines written: {written}", file=sys.stderr)
        print(f"- output: {args.output or '<stdout>'}", file=sys.stderr)
        print(f"- elapsed time: {elapsed:.2f}s", file=sys.stderr)


if __name__ == "__main__":
    main()
