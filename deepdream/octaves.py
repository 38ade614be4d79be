"""
Многомасштабный DeepDream: изображение обрабатывается последовательностью октав от самой маленькой
до исходного размера. После восхождения на каждой октаве в изображение возвращаются детали,
потерянные при уменьшении
"""
from typing import Callable, List, Optional, Sequence

import tensorflow as tf

from deepdream.ascent import Oracle, StepHook, gradient_ascent_loop, print_loss
from deepdream.config import DreamConfig
from deepdream.errors import ShapeError
from deepdream.images import Image, Shape, check_shape, resize_img, spatial_shape

Resize = Callable[[Image, Sequence[int]], Image]
OctaveHook = Callable[[int, Shape, Image], object]


def successive_shapes(original_shape: Sequence[int], octave_count: int,
                      octave_scale: float) -> List[Shape]:
    """
    Вычисляет размеры всех октав: исходный размер, уменьшенный в octave_scale ** i раз для i = 1..octave_count.
    Список упорядочен от самого маленького размера к исходному, последний элемент совпадает с исходным размером
    """
    original_shape = check_shape(original_shape)
    shapes: List[Shape] = [original_shape]
    for i in range(1, octave_count + 1):
        shape: Shape = tuple([int(dim / (octave_scale ** i)) for dim in original_shape])
        shapes.append(check_shape(shape))
    # Переворачиваем список, чтобы сначала обрабатывать самые маленькие изображения
    shapes = shapes[::-1]
    for smaller, larger in zip(shapes, shapes[1:]):
        if smaller[0] >= larger[0] or smaller[1] >= larger[1]:
            raise ShapeError(
                f"octave shapes must strictly increase, got {smaller} before {larger}; "
                "use fewer octaves or a larger image")
    return shapes


def lost_detail(original_img: Image, shrunk_original_img: Image, shape: Shape,
                resize: Resize = resize_img) -> tf.Tensor:
    """
    Разница между оригиналом и его уменьшенной копией, приведенными к размеру shape,
    то есть детали, уничтоженные уменьшением
    """
    upscaled_shrunk_original_img = resize(shrunk_original_img, shape)
    same_size_original = resize(original_img, shape)
    return tf.cast(same_size_original, tf.float32) - tf.cast(upscaled_shrunk_original_img, tf.float32)


def run_deep_dream(original_img: Image, oracle: Oracle, config: Optional[DreamConfig] = None,
                   resize: Resize = resize_img,
                   on_octave: Optional[OctaveHook] = None,
                   should_stop: Optional[Callable[[], bool]] = None,
                   on_step: Optional[StepHook] = print_loss) -> tf.Tensor:
    """
    original_img: Исходное (предобработанное) изображение
    oracle: Функция изображение -> (потери, градиент)
    config: Параметры запуска, проверяются до первого обращения к оракулу
    resize: Функция масштабирования, одна для всех переходов и вычисления деталей
    on_octave: Вызывается после каждой октавы с (номер, размер, изображение), например для сохранения
    should_stop: Проверяется перед каждой следующей октавой; если вернула True, возвращается текущий результат
    on_step: Получает (номер шага, потери) на каждом шаге восхождения
        returns:
    img: Итоговое изображение исходного размера
    """
    config = (config or DreamConfig()).validate()
    original_shape = spatial_shape(original_img)
    shapes = successive_shapes(original_shape, config.octave_count, config.octave_scale)

    original_img = tf.cast(original_img, tf.float32)
    # Уменьшаем оригинал до самого маленького размера
    shrunk_original_img = resize(original_img, shapes[0])
    img = original_img

    for i, shape in enumerate(shapes):
        if i > 0 and should_stop is not None and should_stop():
            print(f"Stopped before octave {i}, returning image with shape {spatial_shape(img)}")
            break
        print(f"Processing octave {i} with shape {shape}")
        img = resize(img, shape) # масштабируем текущее изображение до размера октавы
        img = gradient_ascent_loop(
            img, oracle, iterations=config.iterations, learning_rate=config.step,
            max_loss=config.max_loss, on_step=on_step)
        img += lost_detail(original_img, shrunk_original_img, shape, resize) # добавляем потерянные детали
        # Пересчитываем уменьшенную копию прямо из оригинала, а не из предыдущей копии
        shrunk_original_img = resize(original_img, shape)
        if on_octave is not None:
            on_octave(i, shape, img)
    return img
