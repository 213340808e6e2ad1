"""
Token reconciliation tests.

Covers add/remove/import merge rules over plain token mappings:
- names unique ignoring case, stored casing from the last write
- remove matches the exact stored name
- import merges per token, dropping invalid entries
- value updates keep names, labels and order
"""

from __future__ import annotations

import random
import string

import pytest

from src.components.tokens import (
    DuplicateError,
    ImportParseError,
    MissingTokenError,
    TokenConfig,
    TokenData,
    UpdatePayloadError,
    ValidationError,
    add_token,
    export_rows,
    import_tokens,
    remove_token,
    update_values,
    validate_token,
)


class TestValidateToken:
    """Field sanitizing and validation."""

    def test_valid_token_is_returned_clean(self) -> None:
        token = validate_token("  PROMO ", "  Promo   Code ", " SAVE10\n")

        assert token.name == "PROMO"
        assert token.label == "Promo Code"
        assert token.value == "SAVE10"

    @pytest.mark.parametrize("name", ["", "   ", "has space", "dash-name", "dot.name", "caf\u00e9"])
    def test_bad_names_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError) as exc:
            validate_token(name, "Label")
        assert exc.value.code == "add_error_invalid_name"
        assert exc.value.field == "name"

    def test_empty_label_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc:
            validate_token("NAME", "   ")
        assert exc.value.code == "add_error_invalid_label"

    def test_label_of_only_markup_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_token("NAME", "<b></b>")

    def test_value_may_be_empty(self) -> None:
        assert validate_token("NAME", "Label", "").value == ""
        assert validate_token("NAME", "Label", None).value == ""

    def test_numeric_fields_coerced(self) -> None:
        token = validate_token(2024, "Year", 10)
        assert token.name == "2024"
        assert token.value == "10"

    def test_non_text_label_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_token("NAME", ["not", "text"])

    def test_max_label_length_enforced(self) -> None:
        config = TokenConfig(max_label_length=5)
        with pytest.raises(ValidationError):
            validate_token("NAME", "Too long label", config=config)


class TestAddToken:
    """Single token add."""

    def test_add_to_empty_mapping(self) -> None:
        result = add_token({}, "PROMO", "Promo Code", "SAVE10")

        assert result.success
        assert result.outcome == "add_success"
        assert result.tokens == {"PROMO": TokenData(label="Promo Code", value="SAVE10")}

    def test_add_keeps_prior_entries_unchanged(self, promo_tokens: dict[str, TokenData]) -> None:
        result = add_token(promo_tokens, "NEW_ONE", "New", "v")

        assert result.tokens is not None
        assert list(result.tokens) == ["PROMO", "Price_Annual", "NEW_ONE"]
        for name, data in promo_tokens.items():
            assert result.tokens[name] == data

    def test_add_does_not_mutate_input(self, promo_tokens: dict[str, TokenData]) -> None:
        before = dict(promo_tokens)
        add_token(promo_tokens, "NEW_ONE", "New", "v")
        assert promo_tokens == before

    def test_duplicate_ignoring_case(self, promo_tokens: dict[str, TokenData]) -> None:
        result = add_token(promo_tokens, "promo", "x", "y")

        assert not result.success
        assert result.tokens is None
        assert isinstance(result.error, DuplicateError)
        assert result.outcome == "add_error_duplicate"

    def test_duplicate_exact_case(self, promo_tokens: dict[str, TokenData]) -> None:
        result = add_token(promo_tokens, "PROMO", "x", "y")
        assert isinstance(result.error, DuplicateError)

    def test_invalid_name_returns_validation_error(self) -> None:
        result = add_token({}, "bad name", "Label")

        assert isinstance(result.error, ValidationError)
        assert result.outcome == "add_error_invalid_name"
        assert result.tokens is None

    def test_invalid_name_checked_before_duplicate(self) -> None:
        result = add_token({"A": TokenData("a")}, "a!", "Label")
        assert isinstance(result.error, ValidationError)

    def test_empty_label_returns_validation_error(self) -> None:
        result = add_token({}, "NAME", "")
        assert result.outcome == "add_error_invalid_label"

    def test_no_fields_is_general_error(self) -> None:
        for empty in ("", None):
            result = add_token({}, empty, empty, empty)

            assert isinstance(result.error, MissingTokenError)
            assert result.outcome == "add_error_general"
            assert result.tokens is None

    def test_label_only_is_invalid_name(self) -> None:
        result = add_token({}, "", "Label")
        assert result.outcome == "add_error_invalid_name"

    def test_message_for_outcome(self) -> None:
        result = add_token({"PROMO": TokenData("p")}, "Promo", "x")
        assert result.message.startswith("Error: A token with that name already exists")


class TestRemoveToken:
    """Removal by exact name."""

    def test_remove_existing(self, promo_tokens: dict[str, TokenData]) -> None:
        result = remove_token(promo_tokens, "PROMO")

        assert result.success
        assert result.outcome == "remove_success"
        assert result.tokens == {"Price_Annual": promo_tokens["Price_Annual"]}

    def test_empty_name_is_noop(self, promo_tokens: dict[str, TokenData]) -> None:
        result = remove_token(promo_tokens, "")
        assert result.success
        assert result.tokens == promo_tokens

        assert remove_token(promo_tokens, None).tokens == promo_tokens

    def test_remove_is_idempotent(self, promo_tokens: dict[str, TokenData]) -> None:
        once = remove_token(promo_tokens, "MISSING").tokens
        assert once is not None
        twice = remove_token(once, "MISSING").tokens
        assert once == twice == promo_tokens

    def test_remove_is_case_sensitive(self, promo_tokens: dict[str, TokenData]) -> None:
        """Add rejects 'promo' as a duplicate of 'PROMO', yet remove('promo') keeps it."""
        result = remove_token(promo_tokens, "promo")

        assert result.success
        assert result.tokens is not None
        assert "PROMO" in result.tokens


class TestImportTokens:
    """Batch import merge."""

    def test_non_list_rejected(self, promo_tokens: dict[str, TokenData]) -> None:
        for payload in (None, "tokens", {"name": "A"}, 5):
            result = import_tokens(promo_tokens, payload)
            assert result.tokens is None
            assert isinstance(result.error, ImportParseError)
            assert result.outcome == "import_error_parse"

    def test_new_tokens_appended_in_order(self) -> None:
        result = import_tokens(
            {"A": TokenData("a", "1")},
            [
                {"name": "B", "label": "b", "value": "2"},
                {"name": "C", "label": "c", "value": "3"},
            ],
        )

        assert result.outcome == "import_success"
        assert result.tokens is not None
        assert list(result.tokens) == ["A", "B", "C"]
        assert result.stats is not None
        assert result.stats.added == 2

    def test_invalid_entries_dropped_silently(self) -> None:
        result = import_tokens(
            {},
            [
                {"name": "bad name", "label": "x"},
                {"name": "NO_LABEL", "label": ""},
                {"label": "missing name"},
                "not a dict",
                None,
                {"name": "GOOD", "label": "Good"},
            ],
        )

        assert result.success
        assert result.tokens == {"GOOD": TokenData(label="Good", value="")}
        assert result.stats is not None
        assert result.stats.invalid == 5

    def test_existing_kept_when_not_replacing(self, promo_tokens: dict[str, TokenData]) -> None:
        result = import_tokens(
            promo_tokens, [{"name": "promo", "label": "New", "value": "NEW"}], False
        )

        assert result.tokens == promo_tokens
        assert result.stats is not None
        assert result.stats.skipped == 1

    def test_replace_takes_imported_casing(self, promo_tokens: dict[str, TokenData]) -> None:
        result = import_tokens(
            promo_tokens, [{"name": "promo", "label": "New", "value": "NEW"}], True
        )

        assert result.tokens is not None
        assert "PROMO" not in result.tokens
        assert result.tokens["promo"] == TokenData(label="New", value="NEW")
        assert list(result.tokens) == ["Price_Annual", "promo"]
        assert result.stats is not None
        assert result.stats.replaced == 1

    def test_replace_only_touches_colliding_token(
        self, promo_tokens: dict[str, TokenData]
    ) -> None:
        result = import_tokens(promo_tokens, [{"name": "PROMO", "label": "L", "value": "V"}], True)

        assert result.tokens is not None
        assert result.tokens["Price_Annual"] == promo_tokens["Price_Annual"]
        assert len(result.tokens) == 2

    def test_batch_duplicates_first_wins_without_replace(self) -> None:
        result = import_tokens(
            {},
            [
                {"name": "Code", "label": "first", "value": "1"},
                {"name": "CODE", "label": "second", "value": "2"},
            ],
        )

        assert result.tokens == {"Code": TokenData(label="first", value="1")}

    def test_batch_duplicates_later_wins_with_replace(
        self, promo_tokens: dict[str, TokenData]
    ) -> None:
        result = import_tokens(
            promo_tokens,
            [
                {"name": "promo", "label": "first", "value": "1"},
                {"name": "Promo", "label": "second", "value": "2"},
            ],
            True,
        )

        assert result.tokens is not None
        assert result.tokens["Promo"] == TokenData(label="second", value="2")
        assert "promo" not in result.tokens
        assert "PROMO" not in result.tokens

    def test_lookup_covers_no_key_collisions(self) -> None:
        result = import_tokens(
            {"Foo": TokenData("f")},
            [
                {"name": "foo", "label": "a"},
                {"name": "FOO", "label": "b"},
                {"name": "fOo", "label": "c"},
            ],
            True,
        )

        assert result.tokens is not None
        assert [k.lower() for k in result.tokens] == ["foo"]
        assert list(result.tokens) == ["fOo"]

    def test_export_round_trip_changes_nothing(self, promo_tokens: dict[str, TokenData]) -> None:
        result = import_tokens(promo_tokens, export_rows(promo_tokens), False)

        assert result.tokens == promo_tokens
        assert result.tokens is not None
        assert list(result.tokens) == list(promo_tokens)

    def test_import_sanitizes_like_add(self) -> None:
        result = import_tokens({}, [{"name": " X ", "label": " <i>Label</i> ", "value": "a\tb"}])
        assert result.tokens == {"X": TokenData(label="Label", value="a b")}


class TestUpdateValues:
    """Saving new values for existing tokens."""

    def test_values_replaced_labels_kept(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"PROMO": "SAVE20"})

        assert result.success
        assert result.outcome == "update_success"
        assert result.tokens is not None
        assert result.tokens["PROMO"] == TokenData(label="Promo Code", value="SAVE20")
        assert result.tokens["Price_Annual"] == promo_tokens["Price_Annual"]

    def test_store_order_kept(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"Price_Annual": "$99", "PROMO": "X"})

        assert result.tokens is not None
        assert list(result.tokens) == ["PROMO", "Price_Annual"]

    def test_values_sanitized(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"PROMO": "  <b>SAVE</b>\n20 "})
        assert result.tokens is not None
        assert result.tokens["PROMO"].value == "SAVE 20"

    def test_empty_value_allowed(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"PROMO": ""})
        assert result.tokens is not None
        assert result.tokens["PROMO"].value == ""

    def test_names_match_exactly(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"promo": "X", "UNKNOWN": "Y"})
        assert result.tokens == promo_tokens

    def test_non_text_values_ignored(self, promo_tokens: dict[str, TokenData]) -> None:
        result = update_values(promo_tokens, {"PROMO": ["x"], "Price_Annual": 199})

        assert result.tokens is not None
        assert result.tokens["PROMO"] == promo_tokens["PROMO"]
        assert result.tokens["Price_Annual"].value == "199"

    def test_does_not_mutate_input(self, promo_tokens: dict[str, TokenData]) -> None:
        before = dict(promo_tokens)
        update_values(promo_tokens, {"PROMO": "X"})
        assert promo_tokens == before

    def test_non_mapping_rejected(self, promo_tokens: dict[str, TokenData]) -> None:
        for payload in (None, [("PROMO", "X")], "PROMO=X"):
            result = update_values(promo_tokens, payload)
            assert isinstance(result.error, UpdatePayloadError)
            assert result.outcome == "update_error_invalid"
            assert result.tokens is None


# --- Randomized sequences ---

_NAME_ALPHABET = string.ascii_letters + string.digits + "_"


def _random_name(rng: random.Random, pool: list[str]) -> str:
    """A fresh valid name, or a re-cased name from the pool to force collisions."""
    if pool and rng.random() < 0.5:
        base = rng.choice(pool)
        return "".join(c.upper() if rng.random() < 0.5 else c.lower() for c in base)
    name = "".join(rng.choice(_NAME_ALPHABET) for _ in range(rng.randint(1, 6)))
    pool.append(name)
    return name


def _random_entry(rng: random.Random, pool: list[str]) -> dict[str, str]:
    return {
        "name": _random_name(rng, pool),
        "label": rng.choice(["Label", "Other label", "x"]),
        "value": rng.choice(["", "v", 'a, "b"', "$1/year"]),
    }


@pytest.mark.parametrize("seed", range(25))
class TestRandomSequences:
    """Invariants over random add/import/remove sequences."""

    def test_names_stay_unique_ignoring_case(self, seed: int) -> None:
        rng = random.Random(seed)
        pool: list[str] = []
        tokens: dict[str, TokenData] = {}

        for _ in range(40):
            op = rng.choice(["add", "import", "remove"])
            if op == "add":
                entry = _random_entry(rng, pool)
                result = add_token(tokens, entry["name"], entry["label"], entry["value"])
            elif op == "import":
                batch = [_random_entry(rng, pool) for _ in range(rng.randint(0, 5))]
                result = import_tokens(tokens, batch, rng.random() < 0.5)
            else:
                result = remove_token(tokens, _random_name(rng, pool))

            if result.tokens is not None:
                tokens = result.tokens
            lowered = [name.lower() for name in tokens]
            assert len(lowered) == len(set(lowered))

    def test_every_valid_name_is_accepted(self, seed: int) -> None:
        rng = random.Random(seed)
        name = _random_name(rng, [])

        result = add_token({}, name, "Label")

        assert result.success
        assert result.tokens is not None
        assert list(result.tokens) == [name]

    def test_export_import_round_trip(self, seed: int) -> None:
        rng = random.Random(seed)
        pool: list[str] = []
        batch = [_random_entry(rng, pool) for _ in range(rng.randint(1, 10))]
        seeded = import_tokens({}, batch, True).tokens
        assert seeded is not None

        for replace in (False, True):
            result = import_tokens(seeded, export_rows(seeded), replace)
            assert result.tokens == seeded
            assert result.tokens is not None
            assert list(result.tokens) == list(seeded)
