import enum
import json
from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


# Partition tokens granting visibility over one CRSD division
class AccessToken(str, enum.Enum):
    CRSD1 = "crsd1"
    CRSD2 = "crsd2"

    @property
    def division(self) -> str:
        return DIVISION_NAMES[self]

    @classmethod
    def parse(cls, values) -> frozenset:
        """Keep only recognized tokens, ignoring case and surrounding blanks."""
        tokens = set()
        for value in values or ():
            if isinstance(value, cls):
                tokens.add(value)
                continue
            try:
                tokens.add(cls(str(value).strip().lower()))
            except ValueError:
                continue
        return frozenset(tokens)


# Division names stored on users.divisi, matched by the access filter
DIVISION_NAMES = {
    AccessToken.CRSD1: "CRSD 1",
    AccessToken.CRSD2: "CRSD 2",
}


class DataAccessType(TypeDecorator):
    """
    Stores a set of AccessToken values as a JSON list.

    The list is sorted and deduplicated on write and NULL when empty, so two
    equal sets always serialize to the same text. Unknown tokens found in
    old rows are dropped on read.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        tokens = AccessToken.parse(value)
        if not tokens:
            return None
        return json.dumps(sorted(t.value for t in tokens))

    def process_result_value(self, value, dialect):
        if not value:
            return frozenset()
        try:
            decoded = json.loads(value)
        except ValueError:
            return frozenset()
        if not isinstance(decoded, list):
            return frozenset()
        return AccessToken.parse(decoded)


def serialize_access(tokens) -> list:
    # Ordered, deduplicated representation used in API payloads
    return sorted(t.value for t in AccessToken.parse(tokens))
