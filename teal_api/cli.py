"""
teal - Teal Compiler Command-Line Interface

Usage Examples
--------------
Compile to WebAssembly text on stdout:
    $ teal hello.teal

Compile inline source with 32-bit integers:
    $ teal -e 'print 1 + 2;' --value-type i32

Compile and run, printing each logged value:
    $ teal hello.teal --run
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from teal import __version__, CompilerOptions, ASTPrinter, TealError, parse
from teal.options import ValueType, EntryStyle

from .context import Context, OutputLog


@click.command()
@click.argument(
    "input_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-e", "--source",
    help="Compile SOURCE instead of reading a file",
)
@click.option(
    "--value-type",
    type=click.Choice([vt.value for vt in ValueType]),
    default=ValueType.F64.value,
    show_default=True,
    help="Numeric type of every value in the module",
)
@click.option(
    "--entry",
    type=click.Choice([e.value for e in EntryStyle]),
    default=EntryStyle.SCRIPT.value,
    show_default=True,
    help="Entry function: main (no result) or init (returns the last value)",
)
@click.option(
    "--memory",
    is_flag=True,
    help="Always declare and export linear memory",
)
@click.option(
    "--run",
    "run_",
    is_flag=True,
    help="Run the module on the reference interpreter and print its output",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the module text to a file instead of stdout",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="teal")
def main(
    input_file: Optional[Path],
    source: Optional[str],
    value_type: str,
    entry: str,
    memory: bool,
    run_: bool,
    ast: bool,
    output: Optional[Path],
    verbose: bool,
) -> None:
    """
    Compile Teal source code to WebAssembly text.

    INPUT_FILE is the Teal source file; use -e to pass source inline.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if (input_file is None) == (source is None):
        raise click.UsageError("Give exactly one of INPUT_FILE or -e SOURCE")

    filename = str(input_file) if input_file else "<string>"
    if input_file is not None:
        source = input_file.read_text(encoding="utf-8")

    options = CompilerOptions(value_type=value_type, entry=entry, memory=memory)
    context = Context(options)

    try:
        if ast:
            click.echo(ASTPrinter().print(parse(source)))
            return

        script = context.compile(source, filename=filename)

        if run_:
            log = OutputLog()
            result = context.execute(script, log)
            for line in log.lines:
                click.echo(line)
            if result is not None:
                click.echo(f"=> {result}")
            return

        if output is not None:
            script.save(str(output))
            if verbose:
                click.echo(f"Compiled {filename} -> {output}")
        else:
            click.echo(script.text, nl=False)

    except TealError as e:
        if e.filename is None:
            e.set_filename(filename)
        click.echo(str(e), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
