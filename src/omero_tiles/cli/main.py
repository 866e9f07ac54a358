"""omero-tiles CLI.

Command-line interface for inspecting tile decompositions and fetching
pixel regions from an OMERO server into .npy files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import numpy as np
import typer

from omero_tiles import __version__
from omero_tiles.pixels import Pixels, TileFetcher
from omero_tiles.pixels.blitz import BlitzClient, connect
from omero_tiles.utils.logging import configure_logging, get_logger

if TYPE_CHECKING:
    from omero.gateway import BlitzGateway

app = typer.Typer(
    name="omero-tiles",
    help="omero-tiles: tiled retrieval of 5D pixel regions from OMERO",
    add_completion=False,
)

RangeOption = tuple[int, int] | None


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"omero-tiles {__version__}")


@app.command()
def tiles(
    width: Annotated[int, typer.Option("--width", "-w", min=1, help="Region width")],
    height: Annotated[
        int, typer.Option("--height", "-h", min=1, help="Region height")
    ],
    x: Annotated[int, typer.Option("--x", help="Region left column")] = 0,
    y: Annotated[int, typer.Option("--y", help="Region top row")] = 0,
    max_edge: Annotated[
        int | None,
        typer.Option("--max-edge", min=1, help="Longest tile edge (default: config)"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show how a plane region is split into tile requests."""
    fetcher = TileFetcher(max_tile_edge=max_edge)
    specs = list(fetcher.iter_tiles(x, y, width, height))

    if json_output:
        typer.echo(json.dumps([spec._asdict() for spec in specs], indent=2))
    else:
        for spec in specs:
            typer.echo(f"x={spec.x} y={spec.y} width={spec.width} height={spec.height}")
        typer.echo(f"{len(specs)} tile(s), max edge {fetcher.max_tile_edge}")


@app.command()
def fetch(  # noqa: PLR0913
    image_id: Annotated[int, typer.Argument(help="OMERO image ID")],
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Destination .npy file")
    ],
    x_range: Annotated[
        RangeOption, typer.Option("--x", help="Column range: LO HI")
    ] = None,
    y_range: Annotated[RangeOption, typer.Option("--y", help="Row range: LO HI")] = None,
    c_range: Annotated[
        RangeOption, typer.Option("--c", help="Channel range: LO HI")
    ] = None,
    z_range: Annotated[
        RangeOption, typer.Option("--z", help="Focal plane range: LO HI")
    ] = None,
    t_range: Annotated[
        RangeOption, typer.Option("--t", help="Timepoint range: LO HI")
    ] = None,
    raw: Annotated[
        bool, typer.Option("--raw", help="Save packed bytes instead of float64")
    ] = False,
    bpp: Annotated[
        int | None,
        typer.Option("--bpp", min=1, help="Bytes per sample for --raw"),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
        ),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Fetch a pixel region of an image and save it with numpy."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    ranges = [_as_range(r) for r in (x_range, y_range, c_range, z_range, t_range)]

    try:
        conn = _open_connection()
        try:
            client = BlitzClient(conn)
            pixels = Pixels(client.get_pixels(image_id))
            if raw:
                data = pixels.get_raw_pixels(client, bpp, *ranges)
            else:
                data = pixels.get_all_pixels(client, *ranges)
        finally:
            conn.close()

        np.save(output, data)
        logger.info("Region saved", path=str(output), shape=data.shape)

        if json_output:
            typer.echo(
                json.dumps(
                    {
                        "image_id": image_id,
                        "pixels_id": pixels.id,
                        "shape": list(data.shape),
                        "dtype": str(data.dtype),
                        "output": str(output),
                    },
                    indent=2,
                )
            )
        else:
            typer.echo(f"Saved {data.shape} {data.dtype} to {output}")
        raise typer.Exit(0)

    except typer.Exit:
        raise
    except Exception as e:
        logger.exception("Fetch failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


# =============================================================================
# Helpers
# =============================================================================


def _open_connection() -> BlitzGateway:
    return connect()


def _as_range(value: RangeOption) -> list[int] | None:
    return list(value) if value else None


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":
    app()
