import dataclasses
from dataclasses import dataclass
from typing import Any

__all__ = [
    'DeserializeOptions',
    'load_options',
]


@dataclass(frozen=True)
class DeserializeOptions:
    """Options

    Conversion options:
    - strip_bpchar: Strip the trailing blank padding of CHAR(n) values (default: True)
    - int_widening: Allow narrower integer columns into wider targets, e.g. INT2 into Int32 (default: True)
    - float_widening: Allow REAL columns into 64-bit float targets (default: True)
    - json_single_field_wrap: Wrap a JSON object as ``{field: object}`` when a
      one-field struct is read from it and the key is absent (default: True)

    Plan caching options:
    - cache_plans: Memoize field plans per target and column layout (default: True)
    - plan_cache_size: Maximum number of cached plans (default: 256)
    - plan_cache_ttl: Seconds a cached plan stays valid (default: 600)
    """
    strip_bpchar: bool = True
    int_widening: bool = True
    float_widening: bool = True
    json_single_field_wrap: bool = True
    cache_plans: bool = True
    plan_cache_size: int = 256
    plan_cache_ttl: int = 600

    def __post_init__(self):
        if self.plan_cache_size < 1:
            raise ValueError('plan_cache_size must be at least 1')
        if self.plan_cache_ttl < 1:
            raise ValueError('plan_cache_ttl must be at least 1 second')


DEFAULT_OPTIONS = DeserializeOptions()


def load_options(options: DeserializeOptions | dict[str, Any] | None = None,
                 **kw: Any) -> DeserializeOptions:
    """Build options from an instance, a dict, or keyword arguments.

    Keyword arguments override values from ``options``. Unknown names raise
    TypeError.
    """
    if options is None:
        options = DEFAULT_OPTIONS
    elif isinstance(options, dict):
        options = DeserializeOptions(**options)
    elif not isinstance(options, DeserializeOptions):
        raise TypeError(f'options must be DeserializeOptions or dict, got {type(options).__name__}')
    if kw:
        options = dataclasses.replace(options, **kw)
    return options
