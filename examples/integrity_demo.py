#!/usr/bin/env python3
"""
Subresource Integrity Demo

This demo walks through sriguard's main capabilities:
1. Generating integrity for data
2. Parsing loose and strict metadata
3. Matching, concatenating and merging collections
4. Verifying buffers and streams

Run this demo:
    python examples/integrity_demo.py
"""

import asyncio
import io

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from sriguard import (
    IntegrityMismatchError,
    IntegrityOptions,
    MergeConflictError,
    check_data,
    check_stream,
    from_data,
    from_hex,
    integrity_stream,
    parse,
)
from sriguard.integrations import get_logger, get_metrics

console = Console()

PAYLOAD = b"console.log('hello from a CDN');\n" * 100


def demo_generation():
    """Demonstrate generating integrity metadata."""
    console.print("\n[bold cyan]=" * 60)
    console.print("[bold cyan]Demo 1: Generating Integrity")
    console.print("[bold cyan]=" * 60)

    sri = from_data(PAYLOAD, algorithms=["sha256", "sha384", "sha512"])

    table = Table(title="Digests of the payload")
    table.add_column("Algorithm", style="cyan")
    table.add_column("Digest", style="green")
    for entry in sri.entries():
        table.add_row(entry.algorithm, entry.digest)
    console.print(table)

    console.print(f"\n[yellow]From a hex digest:[/] {from_hex('deadbeef', 'sha1')}")
    return sri


def demo_parsing():
    """Demonstrate loose and strict parsing."""
    console.print("\n[bold cyan]=" * 60)
    console.print("[bold cyan]Demo 2: Parsing")
    console.print("[bold cyan]=" * 60)

    raw = "sha1-3q2+7w== sha512-@@@ thisisbad sha256-abcd?opt"

    table = Table(title=f"parse({raw!r})")
    table.add_column("Mode", style="cyan")
    table.add_column("Algorithms")
    table.add_column("Serialized", style="green")
    for strict in (False, True):
        parsed = parse(raw, strict=strict)
        table.add_row(
            "strict" if strict else "loose",
            ", ".join(parsed.algorithms) or "-",
            parsed.to_string() or "(empty)",
        )
    console.print(table)

    best = parse(raw, single=True)
    console.print(f"\n[yellow]Strongest entry:[/] {best}")


def demo_collections(sri):
    """Demonstrate matching, concat and merge."""
    console.print("\n[bold cyan]=" * 60)
    console.print("[bold cyan]Demo 3: Collections")
    console.print("[bold cyan]=" * 60)

    published = parse(str(sri["sha512"][0]))
    match = sri.match(published)
    console.print(f"[green]Match on {match.algorithm}" if match else "[red]No match")

    combined = published.concat("sha1-3q2+7w==")
    console.print(f"[yellow]Concatenated:[/] {combined}")

    try:
        published.merge("sha512-bm90IHRoZSBzYW1lIGRpZ2VzdA==")
    except MergeConflictError as exc:
        console.print(f"[red]Merge refused ({exc.code}):[/] {exc}")


def demo_verification(sri):
    """Demonstrate buffer and stream verification."""
    console.print("\n[bold cyan]=" * 60)
    console.print("[bold cyan]Demo 4: Verification")
    console.print("[bold cyan]=" * 60)

    console.print(f"[green]check_data:[/] {check_data(PAYLOAD, sri)}")
    console.print(f"[green]check_data (tampered):[/] {check_data(PAYLOAD + b'//', sri)}")

    entry = asyncio.run(check_stream(io.BytesIO(PAYLOAD), sri))
    console.print(f"[green]check_stream:[/] verified with {entry.algorithm}")

    opts = IntegrityOptions(algorithms=["sha256"])
    stream = integrity_stream(opts)
    stream.on("verified", lambda e: console.print(f"[green]stream verified[/] {e.algorithm}"))
    stream.on("error", lambda e: console.print(f"[red]stream error ({e.code})"))

    for offset in range(0, len(PAYLOAD), 512):
        stream.write(PAYLOAD[offset:offset + 512])
    opts.integrity = from_data(b"something else")

    try:
        stream.end()
    except IntegrityMismatchError:
        pass


def demo_monitoring():
    """Show recorded events and metrics."""
    console.print("\n[bold cyan]=" * 60)
    console.print("[bold cyan]Demo 5: Monitoring")
    console.print("[bold cyan]=" * 60)

    table = Table(title="Recent integrity events")
    table.add_column("Event", style="cyan")
    table.add_column("Severity")
    table.add_column("Message")
    for event in get_logger().get_recent_events():
        table.add_row(event.event_type.value, event.severity, event.message[:60])
    console.print(table)

    summary = get_metrics().get_summary()
    verification = summary["verification"]
    console.print(Panel(
        f"Digests: {summary['digests']}\n"
        f"Bytes hashed: {int(summary['bytes_hashed'])}\n"
        f"Verifications: {int(verification['total'])} "
        f"(pass rate {verification['pass_rate']:.0%})",
        title="Metrics",
    ))


def main():
    console.print(Panel.fit(
        "[bold]sriguard[/bold]\nSubresource Integrity for Python",
        border_style="cyan",
    ))

    sri = demo_generation()
    demo_parsing()
    demo_collections(sri)
    demo_verification(sri)
    demo_monitoring()


if __name__ == "__main__":
    main()
