from imagesegmenter.cli import main

main(prog_name="imagesegmenter")
