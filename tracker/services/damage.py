from tracker.errors import InvalidActionError
from tracker.schemas import Position
from tracker.services.belief import Area, Exact, FuzzyPos
from tracker.services.masks import MaskTable

DAMAGE_NONE = "none"
DAMAGE_SPLASH = "splash"
DAMAGE_DIRECT = "direct"

def classify_damage(life_before: int, life_after: int) -> str:
    delta = life_before - life_after
    if delta <= 0:
        return DAMAGE_NONE
    if delta == 1:
        return DAMAGE_SPLASH
    return DAMAGE_DIRECT

def refine_with_damage(
    belief: FuzzyPos,
    attack: Position,
    life_before: int,
    life_after: int,
    masks: MaskTable,
    *,
    refine_on_miss: bool = False,
) -> tuple[FuzzyPos, str]:
    """
    自軍の攻撃結果で候補を絞り込む。戻り値は (新しい状態, 判定)。
    - 1ダメージ: 着弾点の周囲 (着弾点自身を除く) にいる
    - 2以上: 着弾点にいる
    - 0: refine_on_miss の時だけ爆風範囲を除外する
    collapse はここでは行わない。
    """
    if not attack.in_bounds(masks.W, masks.H):
        raise InvalidActionError(attack, "attack position outside map")
    kind = classify_damage(life_before, life_after)
    if kind == DAMAGE_DIRECT:
        return Exact(attack), kind
    if not isinstance(belief, Area):
        return belief, kind
    if kind == DAMAGE_SPLASH:
        ring = masks.blast_area(attack, include_center=False)
        return Area((belief.grid & ring).freeze()), kind
    if refine_on_miss:
        return Area((belief.grid - masks.blast_area(attack)).freeze()), kind
    return belief, kind
