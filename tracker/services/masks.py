"""
静的マスクテーブル。

起動時に一度だけ構築し、全ての Grid を凍結した状態で共有する。
ターン毎の処理は、ここのマスクの参照と平行移動だけで行う。
"""
from dataclasses import dataclass
from tracker.errors import InvalidActionError
from tracker.schemas import Position, TrackerConfig
from tracker.services.grid import Grid

@dataclass(frozen=True)
class Kernel:
    """原点付きのマスク。origin が対象セルに重なるように平行移動して使う。"""
    grid: Grid
    origin: Position

    def place(self, W: int, H: int, center: Position) -> Grid:
        """center に原点を合わせた W x H の Grid を返す。"""
        return Grid.single(W, H, center).compose(self.grid, self.origin)

@dataclass(frozen=True)
class MaskTable:
    W: int
    H: int
    regions: int
    sector_w: int
    sector_h: int
    sectors: tuple[Grid, ...]
    torpedo: Kernel
    silence: Kernel
    blast: Kernel

    @property
    def sector_count(self) -> int:
        return len(self.sectors)

    def sector_mask(self, sector: int) -> Grid:
        if not (1 <= sector <= self.sector_count):
            raise InvalidActionError(sector, f"sector must be in 1..{self.sector_count}")
        return self.sectors[sector - 1]

    def sector_of(self, pos: Position) -> int:
        if not pos.in_bounds(self.W, self.H):
            raise InvalidActionError(pos, "position outside map")
        return (pos.y // self.sector_h) * self.regions + (pos.x // self.sector_w) + 1

    def torpedo_area(self, target: Position) -> Grid:
        return self.torpedo.place(self.W, self.H, target)

    def silence_area(self, origin: Position) -> Grid:
        return self.silence.place(self.W, self.H, origin)

    def blast_area(self, center: Position, *, include_center: bool = True) -> Grid:
        area = self.blast.place(self.W, self.H, center)
        if not include_center:
            area = area.copy()
            area.set(center, False)
        return area

def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)

def build_sector_masks(W: int, H: int, regions: int) -> tuple[int, int, tuple[Grid, ...]]:
    """
    マップを regions x regions の区画に分け、行優先で 1.. の番号を付ける。
    割り切れない場合は端の区画が小さくなる。
    """
    sw = max(1, _ceil_div(W, regions))
    sh = max(1, _ceil_div(H, regions))
    sectors = []
    for sy in range(regions):
        for sx in range(regions):
            row = 0
            for x in range(sx * sw, min(W, (sx + 1) * sw)):
                row |= 1 << x
            rows = [row if sy * sh <= y < (sy + 1) * sh else 0 for y in range(H)]
            sectors.append(Grid(W, H, rows).freeze())
    return sw, sh, tuple(sectors)

def build_diamond_kernel(radius: int) -> Kernel:
    """マンハッタン距離 radius 以内"""
    size = 2 * radius + 1
    origin = Position(x=radius, y=radius)
    g = Grid(size, size)
    for y in range(size):
        for x in range(size):
            p = Position(x=x, y=y)
            if p.manhattan(origin) <= radius:
                g.set(p, True)
    return Kernel(grid=g.freeze(), origin=origin)

def build_cross_kernel(reach: int, include_origin: bool = True) -> Kernel:
    """1方向に 0..reach マス直進して到達できるセル (十字形)"""
    size = 2 * reach + 1
    origin = Position(x=reach, y=reach)
    g = Grid(size, size)
    for d in range(1, reach + 1):
        g.set(origin.offset(d, 0), True)
        g.set(origin.offset(-d, 0), True)
        g.set(origin.offset(0, d), True)
        g.set(origin.offset(0, -d), True)
    if include_origin:
        g.set(origin, True)
    return Kernel(grid=g.freeze(), origin=origin)

def build_square_kernel(radius: int) -> Kernel:
    """チェビシェフ距離 radius 以内 (爆風範囲)"""
    size = 2 * radius + 1
    return Kernel(grid=Grid.full(size, size).freeze(), origin=Position(x=radius, y=radius))

def build_mask_table(W: int, H: int, config: TrackerConfig|None = None) -> MaskTable:
    if config is None:
        config = TrackerConfig()
    sw, sh, sectors = build_sector_masks(W, H, config.regions_per_side)
    return MaskTable(
        W=W,
        H=H,
        regions=config.regions_per_side,
        sector_w=sw,
        sector_h=sh,
        sectors=sectors,
        torpedo=build_diamond_kernel(config.torpedo_range),
        silence=build_cross_kernel(config.silence_range, config.silence_include_origin),
        blast=build_square_kernel(config.blast_radius),
    )
