"""
Исключения конвейера DeepDream
"""


class DreamError(Exception):
    """Базовое исключение для всех ошибок запуска"""


class ConfigError(DreamError, ValueError):
    """Недопустимые параметры запуска или настройки слоев"""


class ShapeError(DreamError, ValueError):
    """Недопустимая форма изображения, октавы или градиента"""
