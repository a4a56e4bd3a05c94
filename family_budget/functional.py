import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


# --- form input parsing


def _parse_number(raw: Any, field: str) -> Either[dict, float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return Left({
            "error": "missing_value",
            "message": f"{field} is required",
            "field": field,
        })
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError:
        return Left({
            "error": "not_a_number",
            "message": f"{field} must be a number, got {raw!r}",
            "field": field,
        })
    if math.isnan(value) or math.isinf(value):
        return Left({
            "error": "not_a_number",
            "message": f"{field} must be a finite number",
            "field": field,
        })
    return Right(value)


def parse_amount(raw: Any) -> Either[dict, float]:
    """Amounts must be strictly positive; the sign lives in the transaction type."""
    def _positive(value: float) -> Either[dict, float]:
        if value <= 0:
            return Left({
                "error": "non_positive_amount",
                "message": f"Amount must be greater than zero, got {value}",
                "field": "amount",
            })
        return Right(value)

    return _parse_number(raw, "amount").bind(_positive)


def parse_limit(raw: Any) -> Either[dict, float]:
    def _non_negative(value: float) -> Either[dict, float]:
        if value < 0:
            return Left({
                "error": "negative_limit",
                "message": f"Limit cannot be negative, got {value}",
                "field": "limit",
            })
        return Right(value)

    return _parse_number(raw, "limit").bind(_non_negative)


def require_text(raw: Optional[str], field: str) -> Either[dict, str]:
    text = (raw or "").strip()
    if not text:
        return Left({
            "error": "missing_value",
            "message": f"{field} is required",
            "field": field,
        })
    return Right(text)
