import sys

from image_cropper.cli import run

if __name__ == "__main__":
    sys.exit(run())
