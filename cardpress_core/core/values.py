from __future__ import annotations

from collections.abc import Mapping, Sequence

from .errors import ChoiceLookupError
from .schema import Card, ChoiceIndex, DataEntry, FieldSpec


def resolve_choice(choice_index: ChoiceIndex, choices: Sequence[object] | None) -> object:
    """Select one choice for an int index, or a same-order list for a sequence of indices."""

    if choices is None:
        raise ChoiceLookupError("choiceIndex is set but the field has no choices")
    if isinstance(choice_index, int) and not isinstance(choice_index, bool):
        return _choice_at(choices, choice_index)
    if isinstance(choice_index, Sequence) and not isinstance(choice_index, str):
        return [_choice_at(choices, index) for index in choice_index]
    raise ChoiceLookupError(f"unsupported choiceIndex: {choice_index!r}")


def select_source(field: FieldSpec, card: Card) -> DataEntry | None:
    """Pick the winning data source: card data, then card default data, then the template field."""

    entry = card.data.get(field.field_id)
    if entry is not None:
        return entry
    if card.default_data is not None:
        default_entry = card.default_data.get(field.field_id)
        if default_entry is not None:
            return default_entry
    if field.value is not None or field.choice_index is not None:
        return DataEntry(value=field.value, choice_index=field.choice_index)
    return None


def resolve_value(field: FieldSpec, card: Card) -> object | None:
    source = select_source(field, card)
    if source is None:
        return None
    if source.choice_index is None:
        return source.value
    try:
        chosen = resolve_choice(source.choice_index, card.choices.get(field.field_id))
    except ChoiceLookupError as exc:
        raise ChoiceLookupError(f"field `{field.field_id}`: {exc}") from None
    if source.value is None:
        return chosen
    return merge_override(chosen, source.value)


def merge_override(chosen: object, override: object) -> object:
    """Shallow-merge `override` on top of a chosen value without touching the choice itself."""

    if isinstance(chosen, list):
        if isinstance(override, Mapping):
            return [merge_override(item, override) for item in chosen]
        if isinstance(override, list):
            merged = list(chosen)
            for i, item in enumerate(override):
                if i < len(merged):
                    merged[i] = item
                else:
                    merged.append(item)
            return merged
        return override
    if isinstance(chosen, Mapping) and isinstance(override, Mapping):
        return {**chosen, **override}
    return override


class ValueResolver:
    """Resolves field values against one card."""

    def __init__(self, card: Card) -> None:
        self._card = card

    @property
    def card(self) -> Card:
        return self._card

    def resolve(self, field: FieldSpec) -> object | None:
        return resolve_value(field, self._card)


def _choice_at(choices: Sequence[object], index: int) -> object:
    if index < 0 or index >= len(choices):
        raise ChoiceLookupError(f"choiceIndex {index} out of range for {len(choices)} choices")
    return choices[index]
