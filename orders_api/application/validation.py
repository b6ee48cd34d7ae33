"""Creation-field validation and update authorization rules."""
from dataclasses import dataclass
import math
import re
from typing import Any, Dict, FrozenSet, Optional

from .errors import OrderValidationError, UpdateNotAllowedError

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9 '-]+")

MESSAGE_DISALLOWED = "Les champs suivants ne sont pas autorisés : {fields}."
MESSAGE_DATE = "Le champ date doit être une date valide au format YYYY-MM-DD."
MESSAGE_IDENTIFIERS = (
    "Les champs productId et clientId doivent contenir uniquement des lettres et des chiffres."
)
MESSAGE_QUANTITY = "Le champ quantity doit être un nombre positif."
MESSAGE_PRICE = "Le champ price doit être un nombre positif."

MESSAGE_ID_IMMUTABLE = "L'identifiant de la commande ne peut pas être modifié."
MESSAGE_UPDATE_DISALLOWED = (
    "Seuls les champs status et price peuvent être mis à jour. "
    "Champs non autorisés : {fields}."
)
MESSAGE_UPDATE_EMPTY = (
    "Seuls les champs status et price peuvent être mis à jour. "
    "Aucun de ces champs n'a été fourni."
)
MESSAGE_STATUS_TYPE = "Le champ status doit être une chaîne de caractères."
MESSAGE_PRICE_TYPE = "Le champ price doit être un nombre."


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a quantity or a price
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    return _is_number(value) and math.isfinite(value)


def _is_positive_number(value: Any) -> bool:
    return _is_finite_number(value) and value > 0


def _matches(pattern: re.Pattern, value: Any) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


def _join(fields) -> str:
    return ", ".join(sorted(str(name) for name in fields))


@dataclass(frozen=True)
class ValidationRules:
    initial_status: str = "En attente de confirmation"
    price_required: bool = False
    date_pattern: re.Pattern = DATE_PATTERN
    identifier_pattern: re.Pattern = IDENTIFIER_PATTERN
    creation_fields: FrozenSet[str] = frozenset({"date", "productId", "clientId", "quantity", "price"})
    mutable_fields: FrozenSet[str] = frozenset({"status", "price"})

    @classmethod
    def from_settings(cls, settings) -> "ValidationRules":
        return cls(
            initial_status=settings.ORDER_INITIAL_STATUS,
            price_required=settings.ORDER_PRICE_REQUIRED,
        )

    @property
    def required_fields(self) -> tuple:
        base = ("date", "productId", "clientId", "quantity")
        return base + ("price",) if self.price_required else base

    @property
    def missing_fields_message(self) -> str:
        names = self.required_fields
        return f"Tous les champs {', '.join(names[:-1])} et {names[-1]} sont obligatoires."


class OrderFieldValidator:
    """Checks an order creation payload.

    The checks run in a fixed order and stop at the first failure:
    whitelist, presence, date shape, identifier shape, quantity, price.
    On success a copy of the payload stamped with the initial status is
    returned.
    """

    def __init__(self, rules: Optional[ValidationRules] = None):
        self.rules = rules or ValidationRules()

    def validate(self, payload: Any) -> Dict[str, Any]:
        rules = self.rules
        if not isinstance(payload, dict):
            raise OrderValidationError(rules.missing_fields_message)

        unknown = set(payload) - rules.creation_fields
        if unknown:
            raise OrderValidationError(MESSAGE_DISALLOWED.format(fields=_join(unknown)))

        if any(not payload.get(name) for name in rules.required_fields):
            raise OrderValidationError(rules.missing_fields_message)

        if not _matches(rules.date_pattern, payload["date"]):
            raise OrderValidationError(MESSAGE_DATE)

        if not (_matches(rules.identifier_pattern, payload["productId"])
                and _matches(rules.identifier_pattern, payload["clientId"])):
            raise OrderValidationError(MESSAGE_IDENTIFIERS)

        if not _is_positive_number(payload["quantity"]):
            raise OrderValidationError(MESSAGE_QUANTITY)

        if (rules.price_required or "price" in payload) and not _is_positive_number(payload.get("price")):
            raise OrderValidationError(MESSAGE_PRICE)

        normalized = dict(payload)
        normalized["status"] = rules.initial_status
        return normalized


class UpdateAuthorizer:
    """Restricts updates to the mutable fields (status, price).

    Values are deliberately not checked here: any status label or price,
    including zero or an empty string, goes through.
    """

    def __init__(self, rules: Optional[ValidationRules] = None):
        self.rules = rules or ValidationRules()

    def authorize(self, payload: Any, order_id: str) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise UpdateNotAllowedError(MESSAGE_UPDATE_EMPTY)

        if "id" in payload and payload["id"] != order_id:
            raise UpdateNotAllowedError(MESSAGE_ID_IMMUTABLE)

        unknown = set(payload) - self.rules.mutable_fields - {"id"}
        if unknown:
            raise UpdateNotAllowedError(MESSAGE_UPDATE_DISALLOWED.format(fields=_join(unknown)))

        changes = {name: payload[name] for name in self.rules.mutable_fields if name in payload}
        if not changes:
            raise UpdateNotAllowedError(MESSAGE_UPDATE_EMPTY)
        return changes


def check_update_values(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Reject values the store cannot hold: a non-string status, a non-numeric price.

    Only the type is checked; zero, negative prices and empty labels pass.
    """
    if "status" in changes and not isinstance(changes["status"], str):
        raise UpdateNotAllowedError(MESSAGE_STATUS_TYPE)
    if "price" in changes and not _is_finite_number(changes["price"]):
        raise UpdateNotAllowedError(MESSAGE_PRICE_TYPE)
    return changes
