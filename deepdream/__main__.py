"""
Запуск DeepDream из командной строки:

    python -m deepdream --image photo.jpg --output dream.png --save-octaves octaves/
"""
import sys
from argparse import ArgumentParser
from typing import List, Optional

from deepdream.config import DreamConfig, default_layer_settings, parse_layer_settings
from deepdream.errors import DreamError
from deepdream.images import OctaveSaver, get_base_image, preprocess_image, save_img
from deepdream.octaves import run_deep_dream
from deepdream.oracle import FeatureLossOracle

defaults = DreamConfig()


def build_parser() -> ArgumentParser:
    ap = ArgumentParser(prog="deepdream", description="Multi-scale DeepDream with InceptionV3")
    ap.add_argument("-i", "--image", help="path to input image (default: downloads coast.jpg)")
    ap.add_argument("-o", "--output", default="dream.png", help="path to output dreamed image")
    ap.add_argument("--octaves", type=int, default=defaults.octave_count,
                    help="number of octaves below the original size")
    ap.add_argument("--octave-scale", type=float, default=defaults.octave_scale,
                    help="size ratio between successive octaves")
    ap.add_argument("--iterations", type=int, default=defaults.iterations,
                    help="gradient ascent steps per octave")
    ap.add_argument("--step", type=float, default=defaults.step, help="gradient ascent step size")
    ap.add_argument("--max-loss", type=float, default=defaults.max_loss,
                    help="stop ascending an octave once the loss exceeds this value")
    ap.add_argument("--no-max-loss", dest="max_loss", action="store_const", const=None,
                    help="never stop early")
    ap.add_argument("--layer", action="append", default=[], metavar="NAME=WEIGHT",
                    help="layer to maximize and its weight, may be repeated "
                         f"(default: {default_layer_settings})")
    ap.add_argument("--save-octaves", metavar="DIR",
                    help="save the image produced at every octave into DIR")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = DreamConfig(
            octave_count=args.octaves,
            octave_scale=args.octave_scale,
            iterations=args.iterations,
            step=args.step,
            max_loss=args.max_loss,
            layer_settings=parse_layer_settings(args.layer) if args.layer else dict(default_layer_settings),
        ).validate()

        print("[INFO] Loading input image...")
        original_img = preprocess_image(args.image or get_base_image())

        print("[INFO] Loading the inception model...")
        oracle = FeatureLossOracle.from_layer_settings(config.layer_settings)

        on_octave = OctaveSaver(args.save_octaves) if args.save_octaves else None
        img = run_deep_dream(original_img, oracle, config, on_octave=on_octave)
        save_img(img, args.output)
    except (DreamError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    print(f"[INFO] Saved dream to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
