# ABOUTME: Shared Click options and parameter types for Epuber CLI commands.
# ABOUTME: Provides the DPI option and an ISO date parameter type.

from datetime import date

import click

from epuber.config import DEFAULT_DPI, MAX_DPI, MIN_DPI

dpi_option = click.option(
    "--dpi",
    type=int,
    default=DEFAULT_DPI,
    show_default=True,
    help=f"Rendering resolution, clamped to {MIN_DPI}-{MAX_DPI}.",
)


class IsoDate(click.ParamType):
    """A YYYY-MM-DD calendar date."""

    name = "date"

    def convert(self, value, param, ctx):
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(value)
        except ValueError:
            self.fail(f"{value!r} is not a YYYY-MM-DD date", param, ctx)


ISO_DATE = IsoDate()
