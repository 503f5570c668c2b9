"""
LutStudio Command Line Interface

Grade a target image after a reference, export the grade as a Hald CLUT
or .cube file, and inspect zone statistics.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click
import yaml

from ..config import load_config, get_config_value
from ..io.images import load_rgba, save_rgba
from ..processing.buffers import BufferContractError
from ..processing.color import (
    ColorAdjustments, ColorGrader, compute_stats, generate_hald_lut,
    hald_to_lut3d, write_cube_lut
)
from ..analysis import GeminiStyleProvider, StyleAnalysisError
from ..utils.logging import setup_console_logging

logger = logging.getLogger(__name__)


def _load_adjustments(path: Optional[Path]) -> ColorAdjustments:
    if path is None:
        return ColorAdjustments()
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise click.ClickException(f"Could not read adjustments from {path}: {e}")
    if not isinstance(data, dict):
        raise click.ClickException(f"Adjustments file {path} must contain a mapping")
    return ColorAdjustments.from_dict(data)


def _analyze_style(config: dict, reference, quiet: bool):
    """Best-effort style analysis; failures are reported, never fatal."""
    style_config = get_config_value(config, 'style_analysis', {}) or {}
    if not style_config.get('enabled', True):
        click.echo("Style analysis is disabled in the configuration", err=True)
        return None

    try:
        profile = GeminiStyleProvider(style_config).analyze_style(reference)
    except (StyleAnalysisError, ValueError) as e:
        click.echo(f"Warning: style analysis unavailable: {e}", err=True)
        return None

    if not quiet:
        click.echo(f"\nStyle: {profile.style_name}")
        if profile.description:
            click.echo(f"  {profile.description}")
        if profile.palette:
            click.echo(f"  Palette: {' '.join(profile.palette)}")
    return profile


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    LutStudio - reference-based color grading

    Matches the tonal zones of a target image to a reference, layers
    interactive-style adjustments on top, and exports the whole grade as
    a lookup table.
    """

    # Ensure context object exists
    if ctx.obj is None:
        ctx.obj = {}

    ctx.obj['config'] = load_config(config)

    # Configure logging level
    level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(level,
                          log_file=get_config_value(ctx.obj['config'], 'logging.file'),
                          fmt=get_config_value(ctx.obj['config'], 'logging.format'))

    # Store CLI options in context
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.argument('reference', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('target', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), required=True,
              help='Graded image output path')
@click.option('--lut-out', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the grade as a 512x512 Hald CLUT PNG')
@click.option('--cube-out', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the grade as a 64-point .cube LUT')
@click.option('--adjustments', '-a', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML or JSON file with adjustment settings')
@click.option('--quality', type=click.IntRange(1, 100), default=None,
              help='JPEG quality (defaults to export.jpeg_quality)')
@click.option('--analyze-style', is_flag=True, help='Describe the reference style with Gemini')
@click.pass_context
def grade(ctx, reference: Path, target: Path, output: Path, lut_out: Optional[Path],
          cube_out: Optional[Path], adjustments: Optional[Path], quality: Optional[int],
          analyze_style: bool):
    """
    Grade TARGET to match the look of REFERENCE.

    REFERENCE: Image whose color statistics are matched
    TARGET: Image to grade
    """
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)
    quality = quality or get_config_value(config, 'export.jpeg_quality', 90)

    settings = _load_adjustments(adjustments)

    try:
        reference_image = load_rgba(reference)
        target_image = load_rgba(target)

        grader = ColorGrader()
        base = grader.prepare(reference_image, target_image)
        graded = grader.apply(settings)
        save_rgba(output, graded, quality=quality)

        if lut_out or cube_out:
            lut = grader.create_lut(settings)
            if lut_out:
                save_rgba(lut_out, lut)
            if cube_out:
                title = get_config_value(config, 'export.cube_title', 'LutStudio Grade')
                write_cube_lut(cube_out, hald_to_lut3d(lut), title=title)

    except (ValueError, BufferContractError, OSError) as e:
        logger.error(f"Grading failed: {e}")
        raise click.ClickException(str(e))

    if not quiet:
        click.echo(f"Graded {target.name} after {reference.name} -> {output}")
        click.echo(f"  Reference mean L: {base.reference_stats.global_mean_l:.1f}")
        click.echo(f"  Target mean L:    {base.target_stats.global_mean_l:.1f}")
        if lut_out:
            click.echo(f"  Hald LUT: {lut_out}")
        if cube_out:
            click.echo(f"  Cube LUT: {cube_out}")

    if analyze_style:
        _analyze_style(config, reference_image, quiet)


@main.command()
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path), required=True,
              help='Output PNG path')
@click.pass_context
def hald(ctx, output: Path):
    """Write the 512x512 identity Hald image."""
    try:
        save_rgba(output, generate_hald_lut())
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))

    if not ctx.obj.get('quiet', False):
        click.echo(f"Identity Hald LUT written to {output}")


@main.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print the statistics as JSON')
@click.pass_context
def stats(ctx, image: Path, as_json: bool):
    """
    Print the per-zone LAB statistics of IMAGE.
    """
    try:
        result = compute_stats(load_rgba(image))
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"Zone statistics for {image.name}")
    click.echo("=" * 60)
    for name, zone in zip(('Shadows', 'Midtones', 'Highlights'), result.zones):
        mean = ', '.join(f"{v:7.2f}" for v in zone.mean)
        std = ', '.join(f"{v:6.2f}" for v in zone.std)
        click.echo(f"{name:<11} mean L,a,b: {mean}   std: {std}")
    click.echo(f"Global mean L: {result.global_mean_l:.2f}")


if __name__ == '__main__':
    main()
