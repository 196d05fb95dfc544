"""Command-line interface for Medicare rate lookups"""

import asyncio
import json
from typing import Optional, Tuple

import click
import structlog

from rate_reference.logging_config import configure_logging
from rate_reference.services.formatter import format_reference_block
from rate_reference.services.lookup import RateLookupService

logger = structlog.get_logger()


@click.group()
@click.option('--log-level', default=None, help='Override LOG_LEVEL')
def cli(log_level: Optional[str]):
    """Medicare Rate Reference CLI"""
    configure_logging(log_level=log_level, log_format="console")


@cli.command()
@click.argument('codes', nargs=-1, required=True)
@click.option('--state', '-s', default=None, help='Two-letter state abbreviation')
@click.option('--json', 'as_json', is_flag=True, help='Print the rate mapping as JSON')
def lookup(codes: Tuple[str, ...], state: Optional[str], as_json: bool):
    """Look up Medicare benchmark rates for CODES"""

    async def run_lookup():
        service = RateLookupService.from_settings()
        try:
            return await service.lookup(list(codes), state)
        finally:
            await service.close()

    rates = asyncio.run(run_lookup())

    if as_json:
        click.echo(json.dumps({code: rate.model_dump() for code, rate in rates.items()}, indent=2))
        return

    block = format_reference_block(rates)
    if block is None:
        click.echo("No CMS Medicare data found for the requested codes.")
        return

    click.echo(block)


if __name__ == '__main__':
    cli()
