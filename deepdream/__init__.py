"""
DeepDream — техника визуализации, которая усиливает признаки, обнаруженные в нейронной сети,
путем градиентного подъема на нескольких масштабах (октавах) изображения
"""
from deepdream.ascent import gradient_ascent_loop, print_loss
from deepdream.config import DreamConfig, default_layer_settings, parse_layer_settings
from deepdream.errors import ConfigError, DreamError, ShapeError
from deepdream.images import (OctaveSaver, deprocess_image, get_base_image, octave_filename,
                              preprocess_image, resize_img, save_img)
from deepdream.octaves import lost_detail, run_deep_dream, successive_shapes
from deepdream.oracle import (FeatureLossOracle, build_feature_extractor, compute_loss,
                              normalize_gradients)

__version__ = "0.1.0"
