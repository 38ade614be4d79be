"""
Параметры процесса DeepDream и их проверка
"""
import dataclasses
from typing import Dict, Iterable, Mapping, Optional

from deepdream.errors import ConfigError

# Слои, активации которых максимизируем, и их веса в общей сумме потерь.
# Эти параметры можно настраивать и получать новые визуальные эффекты
default_layer_settings: Dict[str, float] = {
    "mixed4": 1.0,
    "mixed5": 1.5,
    "mixed6": 2.0,
    "mixed7": 2.5,
}


@dataclasses.dataclass(frozen=True)
class DreamConfig:
    """
    Настройки одного запуска, значения по умолчанию взяты из классического примера
    """
    octave_count: int = 2 # Количество октав ниже исходного размера (всего масштабов octave_count + 1)
    octave_scale: float = 1.4 # Отношение между соседними масштабами
    iterations: int = 20 # Число шагов восхождения для каждого масштаба
    step: float = 0.01 # Размер шага градиентного восхождения
    max_loss: Optional[float] = 10. # Мягкий предел потерь, None отключает проверку
    layer_settings: Mapping[str, float] = dataclasses.field(
        default_factory=lambda: dict(default_layer_settings))

    def validate(self) -> "DreamConfig":
        if isinstance(self.octave_count, bool) or not isinstance(self.octave_count, int):
            raise ConfigError(f"octave_count must be an integer, got {self.octave_count!r}")
        if self.octave_count < 0:
            raise ConfigError(f"octave_count must be >= 0, got {self.octave_count}")
        if not self.octave_scale > 1:
            raise ConfigError(f"octave_scale must be > 1, got {self.octave_scale}")
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int):
            raise ConfigError(f"iterations must be an integer, got {self.iterations!r}")
        if self.iterations <= 0:
            raise ConfigError(f"iterations must be positive, got {self.iterations}")
        if not self.step > 0:
            raise ConfigError(f"step must be positive, got {self.step}")
        if self.max_loss is not None and not self.max_loss > 0:
            raise ConfigError(f"max_loss must be positive or None, got {self.max_loss}")
        check_layer_settings(self.layer_settings)
        return self


def check_layer_settings(settings: Mapping[str, float]) -> None:
    """Веса слоев должны быть неотрицательными, а сам набор слоев непустым"""
    if not settings:
        raise ConfigError("layer_settings must name at least one layer")
    for name, coeff in settings.items():
        if not coeff >= 0:
            raise ConfigError(f"weight of layer {name!r} must be >= 0, got {coeff}")


def parse_layer_settings(pairs: Iterable[str]) -> Dict[str, float]:
    """
    Разбирает строки вида "mixed4=1.5" в словарь {имя слоя: вес}
    """
    settings: Dict[str, float] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ConfigError(f"expected NAME=WEIGHT, got {pair!r}")
        try:
            settings[name] = float(value)
        except ValueError:
            raise ConfigError(f"weight of layer {name!r} is not a number: {value!r}") from None
    check_layer_settings(settings)
    return settings
