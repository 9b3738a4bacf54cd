# layout_profiler/cli.py - Command-line interface
"""
Command-line interface for the Layout Profiler.
"""

import asyncio
import click
import logging
import sys

import yaml
from playwright.async_api import Error as PlaywrightError

from layout_profiler.collector.devices import DEVICES, device_names
from layout_profiler.exceptions import ConfigError, LayoutProfilerError
from layout_profiler.utils.config import Config
from layout_profiler.utils.helpers import create_results_dir, load_trace
from layout_profiler.utils.logger import setup_logging


LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@click.command()
@click.argument('url', required=False)
@click.option('--showBrowser', '-b', 'show_browser', is_flag=True, help='Show the browser window')
@click.option('--scrollDown', 'scroll_down', type=click.BOOL, default=None,
              help='Scroll to the bottom after load to provoke more layout shifts')
@click.option('--cpuThrottling', 'cpu_throttling', type=float, default=None, help='CPU slowdown factor')
@click.option('--device', default=None, help='Device emulation profile')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False), help='Configuration file')
@click.option('--output-format', type=click.Choice(['stdout', 'json', 'prometheus']), default=None,
              help='Additional export written next to the trace')
@click.option('--log-level', default='INFO', type=click.Choice(LOG_LEVELS))
@click.option('--log-file', type=click.Path(), help='Log file path')
def measure(url, show_browser, scroll_down, cpu_throttling, device, config_file, output_format,
            log_level, log_file):
    """
    Measure layout reflows and layout shifts of a page.

    Example:
        layout-profiler https://example.com
        layout-profiler https://example.com -b --device "iPhone 12" --cpuThrottling 6
        layout-profiler https://example.com --scrollDown false --output-format json
    """
    from layout_profiler.analyzer.sourcemaps import load_profile_with_source_maps
    from layout_profiler.collector.aggregator import ReflowAggregator
    from layout_profiler.collector.tracer import PageTracer
    from layout_profiler.exporters.json_exporter import JSONExporter
    from layout_profiler.exporters.prometheus import PrometheusExporter
    from layout_profiler.exporters.stdout import StdoutExporter

    setup_logging(level=log_level, log_file=log_file)
    logger = logging.getLogger(__name__)

    if not url:
        click.echo("url argument missing")
        sys.exit(0)

    try:
        cfg = Config(config_file)
    except (ConfigError, yaml.YAMLError) as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)

    # Override config with CLI options
    if show_browser:
        cfg.set('browser.headless', False)
    if scroll_down is not None:
        cfg.set('scroll.enabled', scroll_down)
    if cpu_throttling is not None:
        cfg.set('browser.cpu_throttling', cpu_throttling)
    if device is not None:
        cfg.set('browser.device', device)
    if output_format is not None:
        cfg.set('output.format', output_format)

    if cfg.get('browser.device') not in DEVICES:
        click.echo(f"Unknown device: {cfg.get('browser.device')}")
        click.echo("Valid devices:")
        for name in device_names():
            click.echo(f"  {name}")
        sys.exit(1)

    try:
        cfg.validate()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    logger.debug(f"Configuration: {cfg.to_dict()}")

    try:
        results_dir, screenshots_dir = create_results_dir(
            cfg.get('output.directory', '.'),
            cfg.get('output.directory_prefix', 'measurements')
        )
    except OSError as e:
        click.echo(f"Error: could not create results directory: {e}", err=True)
        sys.exit(1)

    tracer = PageTracer.from_config(cfg)
    try:
        capture = asyncio.run(tracer.run(url, results_dir, screenshots_dir))
    except PlaywrightError as e:
        logger.error(f"Browser error: {e}")
        sys.exit(1)

    profile = load_profile_with_source_maps(capture.trace_path)
    json_exporter = JSONExporter(results_dir)
    json_exporter.export_mapped_profile(profile)

    aggregator = ReflowAggregator(cfg.get('reflow.event_names'))
    aggregator.add_trace(profile)
    reflows = aggregator.get_entries()

    exporter = StdoutExporter(column_threshold=cfg.get('reflow.column_threshold', 120))
    exporter.print_reflows(reflows)
    exporter.print_layout_shifts(capture.layout_shifts)

    export_format = cfg.get('output.format', 'stdout')
    if export_format == 'json':
        json_exporter.export_report(url, reflows, capture.layout_shifts, aggregator.get_summary())
    elif export_format == 'prometheus':
        metrics = PrometheusExporter(url)
        metrics.record_reflows(reflows)
        metrics.record_layout_shifts(capture.layout_shifts)
        metrics.write(results_dir)


@click.command()
@click.argument('trace_file', type=click.Path(exists=True, dir_okay=False), default='profile.mapped.json')
@click.option('--marker-suffix', default=None, help='Suffix of the hydration function name')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False), help='Configuration file')
@click.option('--log-level', default='INFO', type=click.Choice(LOG_LEVELS))
def hydration(trace_file, marker_suffix, config_file, log_level):
    """
    Attribute hydration CPU time of a source mapped trace.

    Example:
        hydration-analyzer measurements-10-19-26-18-42-07/profile.mapped.json
    """
    from layout_profiler.analyzer.hydration import HydrationAnalyzer
    from layout_profiler.exporters.stdout import StdoutExporter

    setup_logging(level=log_level)

    try:
        cfg = Config(config_file)
        if marker_suffix:
            cfg.set('hydration.marker_suffix', marker_suffix)

        trace = load_trace(trace_file)
        report = HydrationAnalyzer(trace, cfg.get('hydration')).analyze()
    except (LayoutProfilerError, yaml.YAMLError, ValueError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    exporter = StdoutExporter()
    exporter.print_attribution("React Components", report.components)
    exporter.print_attribution("Node Modules", report.modules)


if __name__ == '__main__':
    measure()
