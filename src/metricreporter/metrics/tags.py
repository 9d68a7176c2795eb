from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Tags:
    """Immutable label set attached to a metric identity.

    Pairs are kept sorted by key and keys are unique, so two ``Tags`` built
    from the same labels compare and hash equal regardless of input order.
    """

    pairs: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pairs", tuple(sorted(dict(self.pairs).items())))

    @classmethod
    def empty(cls) -> "Tags":
        return cls()

    @classmethod
    def of(cls, tags: "TagsLike" = None) -> "Tags":
        if tags is None:
            return cls()
        if isinstance(tags, Tags):
            return tags
        return cls(tuple((str(key), str(value)) for key, value in tags.items()))

    def and_(self, other: "TagsLike") -> "Tags":
        # keys in `other` win
        merged = dict(self.pairs)
        merged.update(Tags.of(other).pairs)
        return Tags(tuple(merged.items()))

    def as_dict(self) -> dict[str, str]:
        return dict(self.pairs)

    def keys(self) -> tuple[str, ...]:
        return tuple(key for key, _ in self.pairs)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __bool__(self) -> bool:
        return bool(self.pairs)

    def __str__(self) -> str:
        return ",".join(f"{key}={value}" for key, value in self.pairs)


TagsLike = Union[Tags, Mapping[str, str], None]


def merge(base: TagsLike, override: TagsLike) -> Tags:
    return Tags.of(base).and_(override)
