#!/usr/bin/env python3
"""
grep-lite: finn linjer som inneholder en fast tekst i en eller flere filer
og skriv dem ut med treffene uthevet.

    grep-lite --file notes.txt --search "a.b"
    grep-lite -f a.txt b.txt -s hello -i

Utseendet kan settes i miljøet eller i en .env-fil ved siden av scriptet:
GREP_LITE_COLOR (auto/always/never) og GREP_LITE_HIGHLIGHT_STYLE.
"""
import argparse
import codecs
import os
import pathlib
import re
import sys
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from dotenv import dotenv_values
from rich.color import ColorSystem
from rich.console import COLOR_SYSTEMS, Console
from rich.errors import StyleSyntaxError
from rich.style import Style
from rich.text import Text

COLOR_MODES = ("auto", "always", "never")
DEFAULT_COLOR = "auto"
DEFAULT_HIGHLIGHT_STYLE = "on yellow"
DEFAULT_ENCODING = "utf-8"

SCRIPT_DIR = pathlib.Path(__file__).parent.resolve()

Marker = Callable[[str], str]


class GrepLiteError(Exception):
    exit_code = 1


class UsageError(GrepLiteError):
    exit_code = 2


class NotFoundError(GrepLiteError):
    def __init__(self, path):
        super().__init__(f"File not found: {path}")
        self.path = path


@dataclass(frozen=True)
class SearchRequest:
    files: tuple
    pattern: str
    ignore_case: bool = False
    encoding: str = DEFAULT_ENCODING
    color: str = DEFAULT_COLOR
    highlight_style: str = DEFAULT_HIGHLIGHT_STYLE
    verbose: bool = False

    @property
    def multiple_files(self) -> bool:
        return len(self.files) > 1


@dataclass(frozen=True)
class MatchResult:
    line_number: int
    line: str
    spans: tuple
    file_label: Optional[str] = None

    def prefix(self) -> str:
        if self.file_label is not None:
            return f"[File: {self.file_label}, Line {self.line_number}]: "
        return f"[Line {self.line_number}]: "

    def render(self, marker: Optional[Marker] = None) -> str:
        """
        Bygger utskriftslinjen. Hvert treff sendes gjennom marker(); teksten
        mellom treffene skrives ut uendret.
        """
        if marker is None:
            return self.prefix() + self.line
        parts = [self.prefix()]
        pos = 0
        for start, end in self.spans:
            parts.append(self.line[pos:start])
            parts.append(marker(self.line[start:end]))
            pos = end
        parts.append(self.line[pos:])
        return "".join(parts)


# ---------------------------------------------------------------------------
# Konfigurasjon og argumenter
# ---------------------------------------------------------------------------

def load_config(env_file: Optional[pathlib.Path] = None) -> dict:
    """
    Henter fargeinnstillinger fra miljøet, med en .env-fil i script-mappen
    som reserve. Filen leses uten å endre os.environ, og bare utseendet kan
    settes der; hva som søkes og hvordan filene leses styres kun av kommandolinjen.
    """
    env_file = env_file if env_file is not None else SCRIPT_DIR / ".env"
    file_values = dotenv_values(env_file) if env_file.is_file() else {}

    def setting(name, default):
        value = os.environ.get(name)
        if value is None:
            value = file_values.get(name)
        return default if value is None else value

    return {
        "color": setting("GREP_LITE_COLOR", DEFAULT_COLOR).strip().lower(),
        "highlight_style": setting("GREP_LITE_HIGHLIGHT_STYLE", DEFAULT_HIGHLIGHT_STYLE),
    }


class _ArgumentParser(argparse.ArgumentParser):
    # Kast i stedet for sys.exit(2), main() skriver ut bruksmeldingen selv.
    def error(self, message):
        raise UsageError(message)


def build_parser(config: Optional[dict] = None) -> argparse.ArgumentParser:
    config = config or {}
    parser = _ArgumentParser(
        prog="grep-lite",
        description="Search files for lines containing a literal substring and highlight the matches.",
        usage="%(prog)s --file <path> [<path> ...] --search <text> [options]",
    )
    parser.add_argument(
        "-f", "--file",
        dest="files",
        action="extend",
        nargs="+",
        required=True,
        metavar="PATH",
        help="Path to the file(s) to search. May be repeated.",
    )
    parser.add_argument("-s", "--search", required=True, metavar="TEXT", help="Substring to search for.")
    parser.add_argument("-i", "--ignore-case", action="store_true", default=False, help="Ignore case.")
    parser.add_argument(
        "--color",
        choices=COLOR_MODES,
        default=config.get("color", DEFAULT_COLOR),
        help="When to use color. Default: %(default)s (GREP_LITE_COLOR).",
    )
    parser.add_argument(
        "--encoding",
        default=DEFAULT_ENCODING,
        help="Text encoding of the input files. Default: %(default)s.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Report progress on stderr.")
    parser.set_defaults(highlight_style=config.get("highlight_style", DEFAULT_HIGHLIGHT_STYLE))
    return parser


def resolve_request(argv=None, config: Optional[dict] = None) -> SearchRequest:
    """Tolker kommandolinjen til en validert SearchRequest, eller kaster UsageError."""
    args = build_parser(config).parse_args(argv)

    if not args.search:
        raise UsageError("argument -s/--search: must not be empty")
    # Standardverdier fra miljøet går ikke gjennom choices-sjekken til argparse.
    if args.color not in COLOR_MODES:
        raise UsageError(f"invalid color mode '{args.color}' (choose from {', '.join(COLOR_MODES)})")
    try:
        Style.parse(args.highlight_style)
    except StyleSyntaxError as e:
        raise UsageError(f"invalid highlight style '{args.highlight_style}': {e}") from e
    try:
        codecs.lookup(args.encoding)
    except LookupError as e:
        raise UsageError(f"unknown encoding '{args.encoding}'") from e

    return SearchRequest(
        files=tuple(args.files),
        pattern=args.search,
        ignore_case=args.ignore_case,
        encoding=args.encoding,
        color=args.color,
        highlight_style=args.highlight_style,
        verbose=args.verbose,
    )


# ---------------------------------------------------------------------------
# Søk
# ---------------------------------------------------------------------------

def literal_pattern(text: str, ignore_case: bool = False) -> "re.Pattern":
    """Kompilerer teksten som et rent bokstavelig mønster; ingen tegn tolkes som regex."""
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(re.escape(text), flags)


def find_spans(line: str, pattern: "re.Pattern") -> tuple:
    return tuple(m.span() for m in pattern.finditer(line))


def read_lines(path, encoding: str = DEFAULT_ENCODING) -> list:
    """
    Leser hele filen og deler kun på LF, slik at linjenumrene stemmer med
    filen. En enslig CR hører til linjen; én avsluttende CR (CRLF) fjernes.
    """
    try:
        with open(path, encoding=encoding, newline="") as fh:
            content = fh.read()
    except FileNotFoundError as e:
        raise NotFoundError(path) from e
    # Tom siste linje etter avsluttende linjeskift beholdes, som ved en vanlig split.
    lines = content.split("\n")
    return [line[:-1] if line.endswith("\r") else line for line in lines[:-1]] + lines[-1:]


def scan_file(path, pattern: "re.Pattern", file_label: Optional[str] = None,
              encoding: str = DEFAULT_ENCODING) -> Iterator[MatchResult]:
    for line_number, line in enumerate(read_lines(path, encoding), 1):
        spans = find_spans(line, pattern)
        if spans:
            yield MatchResult(line_number=line_number, line=line, spans=spans, file_label=file_label)


def scan(request: SearchRequest, on_file: Optional[Callable[[str], None]] = None) -> Iterator[MatchResult]:
    """
    Går gjennom filene i den rekkefølgen de ble oppgitt og gir treffene linje
    for linje. Mangler en fil kastes NotFoundError, og resten av filene hoppes over.
    """
    pattern = literal_pattern(request.pattern, request.ignore_case)
    for path in request.files:
        if on_file is not None:
            on_file(path)
        label = path if request.multiple_files else None
        yield from scan_file(path, pattern, file_label=label, encoding=request.encoding)


# ---------------------------------------------------------------------------
# Utskrift
# ---------------------------------------------------------------------------

def make_console(color: str = DEFAULT_COLOR, stderr: bool = False) -> Console:
    if color == "always":
        return Console(stderr=stderr, force_terminal=True, no_color=False, highlight=False, soft_wrap=True)
    if color == "never":
        return Console(stderr=stderr, color_system=None, highlight=False, soft_wrap=True)
    return Console(stderr=stderr, highlight=False, soft_wrap=True)


def console_color_system(console: Console, color: str = DEFAULT_COLOR) -> Optional[ColorSystem]:
    if color == "never" or console.no_color:
        return None
    if console.color_system is None:
        # TERM=dumb gir ingen fargesystem selv med force_terminal.
        return ColorSystem.STANDARD if color == "always" else None
    return COLOR_SYSTEMS[console.color_system]


def make_marker(style: str = DEFAULT_HIGHLIGHT_STYLE,
                color_system: Optional[ColorSystem] = None) -> Optional[Marker]:
    """Lager en funksjon som pakker inn et treff i ANSI-koder, eller None for ren tekst."""
    if color_system is None:
        return None
    parsed = Style.parse(style)

    def mark(text: str) -> str:
        return parsed.render(text, color_system=color_system)

    return mark


def print_usage_error(error: UsageError, err: Console) -> None:
    err.print(Text(build_parser().format_usage().rstrip()))
    err.print(Text(f"Error: {error}", style="red"))


def run(request: SearchRequest, err: Console, out=None, marker: Optional[Marker] = None) -> int:
    out = out if out is not None else sys.stdout
    match_count = 0
    file_count = 0

    def on_file(path):
        nonlocal file_count
        file_count += 1
        if request.verbose:
            err.print(Text(f"Searching {path}", style="dim"))

    for result in scan(request, on_file=on_file):
        print(result.render(marker), file=out)
        match_count += 1

    if request.verbose:
        err.print(Text(f"{match_count} matching line(s) in {file_count} file(s)", style="dim"))
    return 0


def main(argv=None) -> int:
    err = make_console(DEFAULT_COLOR, stderr=True)
    try:
        config = load_config()
    except Exception as e:
        err.print(Text(f"Unexpected error: {e}", style="red"))
        return 1
    if config["color"] in COLOR_MODES:
        err = make_console(config["color"], stderr=True)

    try:
        request = resolve_request(argv, config)
    except UsageError as e:
        print_usage_error(e, err)
        return e.exit_code

    err = make_console(request.color, stderr=True)
    out = make_console(request.color)
    marker = make_marker(request.highlight_style, console_color_system(out, request.color))
    try:
        return run(request, err, out=out.file, marker=marker)
    except GrepLiteError as e:
        err.print(Text(f"Error: {e}", style="red"))
        return e.exit_code
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        err.print(Text(f"Unexpected error: {e}", style="red"))
        return 1


if __name__ == "__main__":
    sys.exit(main())
