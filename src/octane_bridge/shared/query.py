"""
Octane REST query builder

    Query.field("name").equal("my pipeline").and_(
        Query.field("ci_server").equal(Query.field("id").equal("1001"))
    ).build()

renders as  "name EQ ^my pipeline^;ci_server EQ {id EQ ^1001^}"
"""

from typing import Iterable, Union


def escape_query_value(value: str) -> str:
    """Escape characters that are meaningful in the query grammar"""
    if not value:
        return value
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _literal(value) -> str:
    if isinstance(value, Query):
        return "{" + value.expression + "}"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return f"^{value}^"


class Query:
    def __init__(self, expression: str):
        self.expression = expression

    @staticmethod
    def field(name: str) -> "Field":
        return Field(name)

    def and_(self, other: "Query") -> "Query":
        return Query(f"{self.expression};{other.expression}")

    def build(self) -> str:
        return f'"{self.expression}"'

    def __str__(self) -> str:
        return self.build()


class Field:
    def __init__(self, name: str):
        self.name = name

    def equal(self, value: Union[str, int, "Query"]) -> Query:
        return Query(f"{self.name} EQ {_literal(value)}")

    def in_(self, values: Iterable[Union[str, int]]) -> Query:
        return Query(f"{self.name} IN {','.join(_literal(value) for value in values)}")
