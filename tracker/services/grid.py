
import random
from typing import Iterator
from tracker.schemas import Direction, Position

def _lowest_bit(v: int) -> int:
    return (v & -v).bit_length() - 1

class Grid:
    """
    マップ全体の真偽値を行ごとの整数ビット列で表現するクラス。
    行 y の整数の bit x が列 x のセルに対応する。
    代数演算 (and/or/not/shift/compose) は常に新しい Grid を返す。
    """
    def __init__(self, width: int, height: int, rows: list[int]|None = None):
        if width < 0 or height < 0:
            raise ValueError("width/height must be non-negative")
        self.__W = width
        self.__H = height
        self.__full_row = (1 << width) - 1
        if rows is None:
            self.__rows = [0] * height
        else:
            if len(rows) != height:
                raise ValueError("rows must have one entry per map row")
            self.__rows = [r & self.__full_row for r in rows]
        self.__frozen = False

    @staticmethod
    def empty(width: int, height: int) -> 'Grid':
        return Grid(width, height)

    @staticmethod
    def full(width: int, height: int) -> 'Grid':
        return Grid(width, height, [(1 << width) - 1] * height)

    @staticmethod
    def single(width: int, height: int, pos: Position) -> 'Grid':
        g = Grid(width, height)
        g.set(pos, True)
        return g

    @staticmethod
    def from_cells(width: int, height: int, cells) -> 'Grid':
        g = Grid(width, height)
        for pos in cells:
            g.set(pos, True)
        return g

    @staticmethod
    def from_rows(lines: list[str]) -> 'Grid':
        """'x' を真、'.' を偽とする文字列の行リストから生成する。"""
        H = len(lines)
        W = len(lines[0]) if H > 0 else 0
        if any(len(line) != W for line in lines):
            raise ValueError("All rows must have the same length")
        rows = []
        for y, line in enumerate(lines):
            r = 0
            for x, ch in enumerate(line):
                if ch == 'x':
                    r |= 1 << x
                elif ch != '.':
                    raise ValueError(f"unexpected map character {ch!r} at ({x},{y})")
            rows.append(r)
        return Grid(W, H, rows)

    @property
    def W(self) -> int:
        return self.__W

    @property
    def H(self) -> int:
        return self.__H

    @property
    def shape(self) -> tuple[int, int]:
        return (self.W, self.H)

    @property
    def rows(self) -> tuple[int, ...]:
        return tuple(self.__rows)

    @property
    def frozen(self) -> bool:
        return self.__frozen

    def freeze(self) -> 'Grid':
        """以後の set を禁止する。静的テーブル用。"""
        self.__frozen = True
        return self

    def copy(self) -> 'Grid':
        """凍結されていない複製を返す。"""
        return Grid(self.W, self.H, self.__rows)

    def in_bounds(self, pos: Position) -> bool:
        return pos.in_bounds(self.W, self.H)

    def _check(self, pos: Position) -> None:
        if not isinstance(pos, Position):
            raise TypeError(f"Grid indices must be Position, not {type(pos).__name__}")
        if not pos.in_bounds(self.W, self.H):
            raise IndexError(f"Coordinates out of bounds: {pos}")

    def _check_shape(self, other: 'Grid') -> None:
        if not isinstance(other, Grid):
            raise TypeError(f"expected Grid, not {type(other).__name__}")
        if other.shape != self.shape:
            raise ValueError(f"Grid shape mismatch {self.shape} != {other.shape}")

    def get(self, pos: Position) -> bool:
        self._check(pos)
        return bool((self.__rows[pos.y] >> pos.x) & 1)

    def set(self, pos: Position, value: bool) -> None:
        if self.__frozen:
            raise TypeError("Grid is frozen")
        self._check(pos)
        if value:
            self.__rows[pos.y] |= 1 << pos.x
        else:
            self.__rows[pos.y] &= ~(1 << pos.x)

    def __getitem__(self, pos: Position) -> bool:
        return self.get(pos)

    def __setitem__(self, pos: Position, value: bool):
        self.set(pos, value)

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return self.shape == other.shape and self.__rows == other.__rows

    __hash__ = None  # type: ignore[assignment]

    # --- boolean algebra ---
    def and_(self, other: 'Grid') -> 'Grid':
        self._check_shape(other)
        return Grid(self.W, self.H, [a & b for a, b in zip(self.__rows, other.__rows)])

    def or_(self, other: 'Grid') -> 'Grid':
        self._check_shape(other)
        return Grid(self.W, self.H, [a | b for a, b in zip(self.__rows, other.__rows)])

    def invert(self) -> 'Grid':
        return Grid(self.W, self.H, [~a & self.__full_row for a in self.__rows])

    def and_not(self, other: 'Grid') -> 'Grid':
        """self ∧ ¬other"""
        self._check_shape(other)
        return Grid(self.W, self.H, [a & ~b for a, b in zip(self.__rows, other.__rows)])

    __and__ = and_
    __or__ = or_
    __invert__ = invert
    __sub__ = and_not

    # --- translation ---
    def translate(self, dx: int, dy: int) -> 'Grid':
        """
        全ての真セルを (dx, dy) だけ平行移動した Grid を返す。
        範囲外に出たセルは捨て、外から入るセルは偽になる。
        """
        rows = [0] * self.H
        for y in range(self.H):
            src = y - dy
            if not (0 <= src < self.H):
                continue
            r = self.__rows[src]
            if dx >= 0:
                r = (r << dx) & self.__full_row
            else:
                r = r >> -dx
            rows[y] = r
        return Grid(self.W, self.H, rows)

    def shift(self, direction: Direction, magnitude: int = 1) -> 'Grid':
        if magnitude < 0:
            raise ValueError("magnitude must be non-negative")
        dx, dy = direction.delta
        return self.translate(dx * magnitude, dy * magnitude)

    def compose(self, kernel: 'Grid', origin: Position) -> 'Grid':
        """
        self の各真セル c に、kernel を origin が c に重なるよう平行移動して OR した結果を返す。
        (点集合と kernel のミンコフスキー和)
        """
        if not kernel.in_bounds(origin):
            raise IndexError(f"kernel origin out of bounds: {origin}")
        result = Grid(self.W, self.H)
        for k in kernel.iter_matches(True):
            d = k - origin
            result = result | self.translate(d.dx, d.dy)
        return result

    def expand(self, steps: int = 1) -> 'Grid':
        """4近傍方向への膨張を steps 回行う。"""
        g = self
        for _ in range(steps):
            g = (g | g.translate(1, 0) | g.translate(-1, 0)
                   | g.translate(0, 1) | g.translate(0, -1))
        return g

    # --- queries ---
    def count(self, target: bool = True) -> int:
        n = sum(r.bit_count() for r in self.__rows)
        return n if target else self.W * self.H - n

    def iter_matches(self, target: bool = True) -> Iterator[Position]:
        """行優先・列昇順で target に一致するセルを列挙する。"""
        for y, r in enumerate(self.__rows):
            v = r if target else ~r & self.__full_row
            while v:
                x = _lowest_bit(v)
                yield Position(x=x, y=y)
                v &= v - 1

    def first_match(self, target: bool = True) -> Position|None:
        for y, r in enumerate(self.__rows):
            v = r if target else ~r & self.__full_row
            if v:
                return Position(x=_lowest_bit(v), y=y)
        return None

    def random_match(self, target: bool = False, rng: random.Random|None = None) -> Position:
        n = self.count(target)
        if n == 0:
            raise ValueError(f"no cell with value {target}")
        r = rng if rng is not None else random.Random()
        i = r.randrange(n)
        for pos in self.iter_matches(target):
            if i == 0:
                return pos
            i -= 1
        raise AssertionError("unreachable")

    def reachable_count(self, start: Position, target: bool = False) -> int:
        """
        start を含む、target 値セルの4連結領域の大きさを返す。
        start 自体が target でなければ 0。
        """
        if self.get(start) != target:
            return 0
        allowed = self if target else self.invert()
        region = Grid.single(self.W, self.H, start)
        while True:
            nxt = region.expand(1) & allowed
            if nxt == region:
                return region.count(True)
            region = nxt

    def dump(self) -> str:
        """'x' (真) と '.' (偽) の文字列で表現する。"""
        lines = []
        for r in self.__rows:
            lines.append("".join('x' if (r >> x) & 1 else '.' for x in range(self.W)))
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.dump()

    def __repr__(self) -> str:
        return f"Grid({self.W}x{self.H}, count={self.count(True)})"
