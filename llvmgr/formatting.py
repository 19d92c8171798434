"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import Iterable, Sequence

from .shell import Installation


def format_bytes(num: float) -> str:
    suffixes = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(num)
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}"
        value /= 1024
    return f"{value:.1f} TiB"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def format_installations(installations: Iterable[Installation]) -> str:
    rows = [
        [install.version, install.env_var, install.prefix, format_bytes(install.size_bytes)]
        for install in installations
    ]
    return render_table(["Version", "Variable", "Prefix", "Size"], rows) if rows else "No LLVM versions installed."


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded).rstrip()
