"""
Вспомогательные функции для загрузки, масштабирования и сохранения изображений.
Изображения хранятся в формате InceptionV3: значения в [-1, 1], форма (1, высота, ширина, 3)
или (высота, ширина, 3)
"""
import os
from typing import Sequence, Tuple, Union

import numpy as np
import tensorflow as tf
from tensorflow import keras

from deepdream.errors import ShapeError

Image = Union[np.ndarray, tf.Tensor]
Shape = Tuple[int, int]


def get_base_image(fname: str = "coast.jpg",
                   origin: str = "https://img-datasets.s3.amazonaws.com/coast.jpg") -> str:
    """Скачивает изображение для экспериментов (кэшируется в ~/.keras) и возвращает путь к нему"""
    return keras.utils.get_file(fname, origin=origin)


def spatial_shape(img: Image) -> Shape:
    """
    Возвращает (высота, ширина) изображения с батч-размерностью или без нее
    """
    dims = tuple(img.shape)
    if len(dims) == 4 and dims[0] != 1:
        raise ShapeError(f"expected a single image, got batch of {dims[0]}")
    if len(dims) not in (3, 4):
        raise ShapeError(f"expected an image of rank 3 or 4, got shape {dims}")
    return int(dims[-3]), int(dims[-2])


def check_shape(shape: Sequence[int]) -> Shape:
    """Форма должна состоять из двух целых измерений не меньше 1"""
    if len(shape) != 2:
        raise ShapeError(f"expected (height, width), got {tuple(shape)}")
    height, width = (int(dim) for dim in shape)
    if height < 1 or width < 1:
        raise ShapeError(f"image dimensions must be >= 1, got {(height, width)}")
    return height, width


def resize_img(img: Image, shape: Sequence[int]) -> tf.Tensor:
    """
    Масштабирует изображение до размера shape (билинейная интерполяция), число каналов не меняется.
    Одна и та же функция используется и для перехода между октавами, и для вычисления потерянных деталей
    """
    shape = check_shape(shape)
    return tf.image.resize(img, shape)


def preprocess_image(image_path: str) -> np.ndarray:
    """
    Открывает изображение и преобразует его в массив, подготовленный для InceptionV3
    """
    img = keras.utils.load_img(image_path)
    img = keras.utils.img_to_array(img)
    img = np.expand_dims(img, axis=0) # добавляем размерность для батча
    img = keras.applications.inception_v3.preprocess_input(img)
    return img


def deprocess_image(img: Image) -> np.ndarray:
    """
    Выполняет обратное преобразование изображения, чтобы его можно было отобразить на экране
    """
    height, width = spatial_shape(img)
    img = np.array(img, dtype="float32").reshape((height, width, 3))
    # Отмена нормализации InceptionV3
    img /= 2.0
    img += 0.5
    img *= 255.
    img = np.clip(img, 0, 255).astype("uint8")
    return img


def save_img(img: Image, fname: str) -> None:
    # scale=False: значения уже приведены к [0, 255], растягивать диапазон не нужно
    keras.utils.save_img(fname, deprocess_image(img), scale=False)


def octave_filename(shape: Sequence[int]) -> str:
    height, width = shape
    return f"dream_at_scale_{height}x{width}.png"


class OctaveSaver:
    """
    Сохраняет промежуточный результат каждой октавы в каталог directory,
    имя файла определяется размером октавы
    """
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def __call__(self, index: int, shape: Shape, img: Image) -> str:
        fname = os.path.join(self.directory, octave_filename(shape))
        save_img(img, fname)
        return fname
