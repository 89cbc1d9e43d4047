import dataclasses

import pytest
from pgrow import DeserializeOptions
from pgrow.options import DEFAULT_OPTIONS, load_options


def test_init_defaults():
    """Test default initialization"""
    options = DeserializeOptions()

    assert options.strip_bpchar is True
    assert options.int_widening is True
    assert options.float_widening is True
    assert options.json_single_field_wrap is True

    assert options.cache_plans is True
    assert options.plan_cache_size == 256
    assert options.plan_cache_ttl == 600


def test_options_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_OPTIONS.strip_bpchar = False


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        DeserializeOptions(plan_cache_size=0)

    with pytest.raises(ValueError):
        DeserializeOptions(plan_cache_ttl=0)


class TestLoadOptions:

    def test_none_gives_defaults(self):
        assert load_options() is DEFAULT_OPTIONS

    def test_instance_passes_through(self):
        options = DeserializeOptions(strip_bpchar=False)
        assert load_options(options) is options

    def test_dict(self):
        assert load_options({'int_widening': False}).int_widening is False

    def test_keywords_override(self):
        options = load_options({'int_widening': False}, int_widening=True, cache_plans=False)
        assert options.int_widening is True
        assert options.cache_plans is False

    def test_unknown_name(self):
        with pytest.raises(TypeError):
            load_options(no_such_option=True)
        with pytest.raises(TypeError):
            load_options({'no_such_option': True})

    def test_wrong_type(self):
        with pytest.raises(TypeError, match='DeserializeOptions or dict'):
            load_options(['strip_bpchar'])

    def test_keywords_are_validated(self):
        with pytest.raises(ValueError):
            load_options(plan_cache_size=-1)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
