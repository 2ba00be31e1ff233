"""
Rich console utilities for Neural Palette debug mode.

Provides readable console output for following provider retries,
fallbacks and cache behaviour while developing against live APIs.
"""

from typing import Any, Dict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

# Shared console instance
console = Console()


def log_retry(provider: str, attempt: int, max_attempts: int, error: str) -> None:
    """
    Log a provider retry attempt.

    Args:
        provider: The provider being retried.
        attempt: Current attempt number (1-indexed).
        max_attempts: Maximum number of attempts allowed.
        error: The error message from the failed call.

    Example:
        >>> log_retry("openai", 1, 3, "Rate limited (429)")
        # Displays a red warning about the retry
    """
    text = Text()
    text.append(f"[{provider}] ", style="bold red")
    text.append(f"Retry {attempt}/{max_attempts} - ", style="yellow")
    text.append(f"Error: {error}", style="dim")
    console.print(text)


def log_fallback(from_provider: str, to_provider: str, reason: str) -> None:
    """
    Log a switch from the primary to the fallback provider.

    Args:
        from_provider: The provider that failed or was unavailable.
        to_provider: The provider about to be tried.
        reason: Why the primary was abandoned.
    """
    panel = Panel(
        reason,
        title=f"[bold yellow]Fallback {from_provider} -> {to_provider}[/bold yellow]",
        border_style="yellow",
        padding=(0, 2),
    )
    console.print(panel)


def log_cache_hit(purpose: str, label: str) -> None:
    """
    Log a cache hit.

    Args:
        purpose: The cache purpose ("completion" or "sentiment").
        label: What was hit: an artist id or a text preview.
    """
    console.print(f"[bold cyan][CACHE][/bold cyan] {purpose} hit {label}")


def print_cache_stats(stats: Dict[str, Any]) -> None:
    """
    Print cache statistics as a table.

    Args:
        stats: The dict returned by ResponseCache.stats().
    """
    table = Table(title="AI Response Cache")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for name, value in stats.items():
        if isinstance(value, float):
            value = f"{value:.3f}"
        table.add_row(name, str(value))
    console.print(table)
