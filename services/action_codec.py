"""
Action Codec - packs validated action fields into the uint256 `data` word
carried by RecordAction vouchers and ActionRecorded events.

Each action kind declares its layout once as (field, bit offset, bit width):

    plant           plot_id [0,16)  seed_tier [16,32)
    buySeed         seed_tier [0,16)  count [16,48)
    sellFruit       fruit_tier [0,16)  count [16,48)
    buyFertilizer   count [0,32)
    gluck_draw      count [0,32)      (also accepted as "draw")
    buyPet          pet_index [0,16)
    checkin         no fields, data = 0
    harvest, water, weed, fertilize, shovel, pesticide, protect, unlockPlot
                    plot_id [0,16)
"""
from enum import Enum
from typing import Dict, Tuple

UINT256_MAX = (1 << 256) - 1


class ActionKind(str, Enum):
    PLANT = 'plant'
    HARVEST = 'harvest'
    WATER = 'water'
    WEED = 'weed'
    FERTILIZE = 'fertilize'
    SHOVEL = 'shovel'
    PESTICIDE = 'pesticide'
    PROTECT = 'protect'
    UNLOCK_PLOT = 'unlockPlot'
    BUY_SEED = 'buySeed'
    BUY_FERTILIZER = 'buyFertilizer'
    SELL_FRUIT = 'sellFruit'
    BUY_PET = 'buyPet'
    CHECKIN = 'checkin'
    GLUCK_DRAW = 'gluck_draw'

    @classmethod
    def parse(cls, value) -> 'ActionKind':
        """Wire name to kind; the contract also emits "draw" for lottery draws"""
        if isinstance(value, cls):
            return value
        if value == 'draw':
            return cls.GLUCK_DRAW
        return cls(value)


PLOT_ACTIONS = (
    ActionKind.HARVEST, ActionKind.WATER, ActionKind.WEED, ActionKind.FERTILIZE,
    ActionKind.SHOVEL, ActionKind.PESTICIDE, ActionKind.PROTECT, ActionKind.UNLOCK_PLOT,
)

Layout = Tuple[Tuple[str, int, int], ...]

LAYOUTS: Dict[ActionKind, Layout] = {
    ActionKind.PLANT: (('plot_id', 0, 16), ('seed_tier', 16, 16)),
    ActionKind.BUY_SEED: (('seed_tier', 0, 16), ('count', 16, 32)),
    ActionKind.SELL_FRUIT: (('fruit_tier', 0, 16), ('count', 16, 32)),
    ActionKind.BUY_FERTILIZER: (('count', 0, 32),),
    ActionKind.GLUCK_DRAW: (('count', 0, 32),),
    ActionKind.BUY_PET: (('pet_index', 0, 16),),
    ActionKind.CHECKIN: (),
}
for _kind in PLOT_ACTIONS:
    LAYOUTS[_kind] = (('plot_id', 0, 16),)


class CodecError(ValueError):
    pass


def layout_for(kind) -> Layout:
    return LAYOUTS[ActionKind.parse(kind)]


def encode(kind, **fields) -> int:
    """Pack the fields of `kind` into one integer; every field is required"""
    layout = layout_for(kind)
    expected = {name for name, _, _ in layout}
    unexpected = set(fields) - expected
    if unexpected:
        raise CodecError(f"Unexpected fields for {kind}: {sorted(unexpected)}")

    data = 0
    for name, offset, width in layout:
        if name not in fields:
            raise CodecError(f"Missing field {name} for {kind}")
        value = fields[name]
        if not isinstance(value, int) or isinstance(value, bool):
            raise CodecError(f"Field {name} must be an integer, got {value!r}")
        if value < 0 or value >= (1 << width):
            raise CodecError(f"Field {name}={value} does not fit in {width} bits")
        data |= value << offset
    return data


def decode(kind, data) -> Dict[str, int]:
    """Unpack `data` with the layout of `kind`"""
    data = int(data)
    if data < 0 or data > UINT256_MAX:
        raise CodecError(f"Action data out of uint256 range: {data}")
    return {
        name: (data >> offset) & ((1 << width) - 1)
        for name, offset, width in layout_for(kind)
    }
