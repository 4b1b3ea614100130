import sys
from pathlib import Path
from typing import Optional

import click
from click.core import ParameterSource

from imagesegmenter.config import EXPORT_FORMATS, SegmenterConfig
from imagesegmenter.console import console
from imagesegmenter.io import ExportError, ImageLoadError, ProgressFileError
from imagesegmenter.pipeline import ImageSegmenter
from imagesegmenter.processing import SessionInterrupted, UntaggedSegmentError

TUNING_OPTIONS = (
    "threshold", "min_area", "outline_thickness", "surroundings_size",
    "output_dir", "crop_margin", "export_format", "seed",
)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("image", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--progress-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Progress file to resume a previous image segmentation session.")
@click.option("--save-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Where to save progress (defaults to the progress file when resuming).")
@click.option("--threshold", type=click.IntRange(0, 255), default=192, show_default=True,
              help="Luminosity threshold for background/foreground separation.")
@click.option("--min-area", type=click.IntRange(min=0), default=20, show_default=True,
              help="Min area of a detected character (to remove noise speckles).")
@click.option("--outline-thickness", type=click.IntRange(min=1), default=4, show_default=True,
              help="Thickness of the outline used to highlight segments.")
@click.option("--surroundings-size", type=click.FloatRange(min=0, min_open=True), default=10.0, show_default=True,
              help="Relative size of surroundings to show on preview.")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("output"),
              show_default=True, help="Directory where to store output.")
@click.option("--crop-margin", type=click.IntRange(min=0), default=2, show_default=True,
              help="Margin to add when cropping segments.")
@click.option("--export-format", type=click.Choice(EXPORT_FORMATS), default="jpg", show_default=True,
              help="File format of the exported segments.")
@click.option("--seed", type=int, default=None, help="Seed for the random preview colors.")
@click.option("--no-confirm", is_flag=True, default=False,
              help="Run thresholding and segment detection without preview windows.")
@click.pass_context
def main(
    ctx: click.Context,
    image: Path,
    progress_file: Optional[Path],
    save_file: Optional[Path],
    threshold: int,
    min_area: int,
    outline_thickness: int,
    surroundings_size: float,
    output_dir: Path,
    crop_margin: int,
    export_format: str,
    seed: Optional[int],
    no_confirm: bool,
) -> None:
    """Segment IMAGE into individual characters and export them as a labeled dataset."""
    config = SegmenterConfig(
        threshold=threshold,
        min_area=min_area,
        outline_thickness=outline_thickness,
        surroundings_size=surroundings_size,
        output_dir=output_dir,
        crop_margin=crop_margin,
        export_format=export_format,
        preview_seed=seed,
    )

    try:
        segmenter = ImageSegmenter(image, config=config, confirm=not no_confirm, save_file=save_file)
        if progress_file is not None:
            segmenter.load_progress(progress_file)
            ignored = [name for name in TUNING_OPTIONS
                       if ctx.get_parameter_source(name) is not ParameterSource.DEFAULT]
            if ignored:
                console.print(
                    f"Using the settings stored in the progress file, ignoring: {', '.join(ignored)}",
                    style="warning",
                )
        segmenter.run()
    except SessionInterrupted as e:
        console.print(str(e), style="warning")
    except (ImageLoadError, ProgressFileError, ExportError, UntaggedSegmentError, ValueError) as e:
        console.print(f"ERROR: {e}", style="error", markup=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
