"""CLI interface for exifcheck -- check, print, extract and strip EXIF metadata."""

import logging
import sys
from pathlib import Path

import click

import exifcheck
from exifcheck.errors import ArgumentError, ExifCheckError
from exifcheck.exif.sections import section_name
from exifcheck.log import cli_dim, cli_error, cli_success, configure_logging
from exifcheck.models import CheckConfig, Control, UnknownPolicy
from exifcheck.pipeline import run_check
from exifcheck.removal import describe_plan, parse_removal_spec

logger = logging.getLogger(__name__)

# Exit code for faults inside the metadata library that are not reported errors
EXIT_INTERNAL_FAULT = 2

EPILOG = """\
\b
--tiff prints primary metadata and thumbnail metadata if available.
--exif prints exif, gps and interoperability metadata if available.
--unknown=keep and --unknown=remove only matter with an output file.
The maker thumbnail may be called preview by some makers.

\b
Removal specification (--remove): comma-separated groups, each a section
id optionally followed by colon-separated field ids, in decimal or 0x/0X hex.
Sections: 0 primary, 1 thumbnail, 2 exif, 3 gps, 4 interoperability,
5 maker, 6 embedded.  Example: --remove 0:0x131:0x132,1
"""


def _optional_path(value):
    return Path(value) if value else None


@click.command(context_settings={'help_option_names': ['-h', '--help']},
               epilog=EPILOG)
@click.version_option(exifcheck.__version__, '-v', '--version', prog_name='exifcheck')
@click.argument('paths', nargs=-1, metavar='FILEPATH')
@click.option('--warn', '-w', is_flag=True,
              help='Warn about parsing issues in metadata (silent by default).')
@click.option('--unknown', '-u', 'unknown', default='keep', show_default=True,
              help='Unknown tags: keep, remove, or stop in error.')
@click.option('--tiff', 'print_tiff', is_flag=True, help='Print TIFF metadata.')
@click.option('--exif', 'print_exif', is_flag=True, help='Print EXIF metadata.')
@click.option('--maker', 'print_maker', is_flag=True, help='Print maker notes.')
@click.option('--all', 'print_all', is_flag=True,
              help='Print all metadata and maker notes.')
@click.option('--print-to', '-p', type=click.Path(dir_okay=False),
              help='Print metadata to this file (stdout by default).')
@click.option('--thumbnails', '-t', is_flag=True,
              help='Print thumbnail type and size.')
@click.option('--extract-original', type=click.Path(dir_okay=False),
              help='Extract the original metadata into a new file.')
@click.option('--extract-thumbnail', type=click.Path(dir_okay=False),
              help='Extract the exif thumbnail, if available, into a new file.')
@click.option('--extract-maker-thumbnail', type=click.Path(dir_okay=False),
              help='Extract the maker thumbnail, if available, into a new file.')
@click.option('--remove', '-r', 'remove_spec', default='',
              help='Sections and fields to remove, e.g. 0:0x131,1.')
@click.option('--output', '-o', type=click.Path(dir_okay=False),
              help='Write the processed file to this path.')
@click.option('--parse-debug', is_flag=True, help='Debug traces while parsing.')
@click.option('--serialize-debug', is_flag=True,
              help='Debug traces while generating the output file.')
def main(paths, warn, unknown, print_tiff, print_exif, print_maker, print_all,
         print_to, thumbnails, extract_original, extract_thumbnail,
         extract_maker_thumbnail, remove_spec, output, parse_debug, serialize_debug):
    """Check if a file has valid EXIF metadata.

    Print metadata sections, extract the original metadata and thumbnails,
    and remove sections or fields before writing a new file.

    FILEPATH is the path to the file to process.
    """
    configure_logging(debug=parse_debug or serialize_debug)

    try:
        config = _build_config(paths, warn, unknown, print_tiff, print_exif,
                               print_maker, print_all, print_to, thumbnails,
                               extract_original, extract_thumbnail,
                               extract_maker_thumbnail, remove_spec, output,
                               parse_debug, serialize_debug)

        click.echo(f'exifcheck: checking file {config.input_path}')
        if warn:
            for line in describe_plan(config.plan, section_name):
                click.echo(cli_dim(f'  {line}'))

        result = run_check(config)
    except ExifCheckError as e:
        click.echo(cli_error(f'exifcheck: {e}'), err=True)
        sys.exit(e.exit_code)
    except Exception as e:
        logger.debug('internal fault', exc_info=True)
        click.echo(cli_error(f'exifcheck: internal error: {e!r}'), err=True)
        sys.exit(EXIT_INTERNAL_FAULT)

    if config.output_path:
        click.echo(cli_success(
            f'exifcheck: wrote {config.output_path} '
            f'({result.fields_removed} field(s), {result.sections_removed} '
            f'section(s) removed)'))


def _build_config(paths, warn, unknown, print_tiff, print_exif, print_maker,
                  print_all, print_to, thumbnails, extract_original,
                  extract_thumbnail, extract_maker_thumbnail, remove_spec,
                  output, parse_debug, serialize_debug) -> CheckConfig:
    """Validate the command line and turn it into a CheckConfig."""
    if len(paths) < 1:
        raise ArgumentError('Missing the name of the file to process')
    if len(paths) > 1:
        raise ArgumentError('Too many files specified (only 1 file at a time)')

    control = Control(
        unknown=UnknownPolicy.parse(unknown),
        warn=warn,
        parse_debug=parse_debug,
        serialize_debug=serialize_debug,
    )

    return CheckConfig(
        input_path=Path(paths[0]),
        print_tiff=print_tiff,
        print_exif=print_exif,
        print_maker=print_maker,
        print_all=print_all,
        print_thumbnails=thumbnails,
        print_path=_optional_path(print_to),
        original_path=_optional_path(extract_original),
        thumbnail_path=_optional_path(extract_thumbnail),
        maker_thumbnail_path=_optional_path(extract_maker_thumbnail),
        output_path=_optional_path(output),
        plan=parse_removal_spec(remove_spec),
        control=control,
    )


if __name__ == '__main__':
    main()
