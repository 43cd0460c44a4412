"""Pot settlement: pool payouts, net positions and who pays whom.

A game's pot is split into pools (say 60% on points, 40% on skins). Each
pool pays players on one metric, higher is better, in one of three ways:

- places: the top N players take fixed percentages of the pool
- per_unit: the pool is shared in proportion to the metric (per skin won)
- winner_take_all: the leader takes the pool

Amounts are whole units except the last payout of a pool, which takes the
remainder so payouts always add up to the pool.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from .models import Scoreboard
from .schemas import PoolConfig

logger = logging.getLogger('spicy.settlement')

# places paid -> percentage of the pool for each place
DEFAULT_PAYOUT_PCTS = {
    1: [100],
    2: [60, 40],
    3: [50, 30, 20],
    4: [45, 27, 18, 10],
    5: [40, 25, 17, 11, 7],
}

# Net positions within a cent of zero are settled
SETTLED = 0.01


@dataclass
class PlayerMetrics:
    player_id: str
    player_name: str = ''
    metrics: dict[str, float] = field(default_factory=dict)


@dataclass
class Payout:
    player_id: str
    player_name: str
    pool_name: str
    metric_value: float
    amount: float
    place: Optional[int] = None


@dataclass
class DebtRecord:
    from_player_id: str
    from_player_name: str
    to_player_id: str
    to_player_name: str
    amount: float


@dataclass
class SettlementResult:
    pot_total: float
    buy_in: float
    payouts: list[Payout] = field(default_factory=list)
    net_positions: dict[str, float] = field(default_factory=dict)
    debts: list[DebtRecord] = field(default_factory=list)


def _round(value: float, places: int = 0) -> float:
    """Round half up, so 2.5 pays 3 rather than 2."""
    scale = 10 ** places
    rounded = math.floor(value * scale + 0.5) / scale
    return int(rounded) if places == 0 else rounded


def payout_pcts(places_paid: int, custom: Optional[Sequence[float]] = None) -> list[float]:
    """Percentages for each paid place; custom ones must cover every place."""
    if custom and len(custom) == places_paid:
        return list(custom)
    return DEFAULT_PAYOUT_PCTS.get(places_paid, DEFAULT_PAYOUT_PCTS[3])


def calculate_pool_payouts(
    pool: PoolConfig,
    player_metrics: Iterable[PlayerMetrics],
    pool_amount: float,
) -> list[Payout]:
    """
    Pay out one pool.

    Players with a zero metric are left out of per_unit and winner_take_all
    pools; a places pool pays down the standings regardless.
    """
    ranked = []
    for pm in player_metrics:
        value = pm.metrics.get(pool.metric)
        if value is None:
            logger.warning(f'Settlement: metric {pool.metric!r} not found for player {pm.player_name or pm.player_id}')
            value = 0
        if value != 0 or pool.split_type == 'places':
            ranked.append((pm, value))
    ranked.sort(key=lambda entry: entry[1], reverse=True)

    payouts: list[Payout] = []
    if not ranked:
        return payouts

    if pool.split_type == 'places':
        places_paid = min(pool.places_paid or 3, len(ranked))
        pcts = payout_pcts(places_paid, pool.payout_pcts)
        paid = 0
        for place, ((pm, value), pct) in enumerate(zip(ranked, pcts), start=1):
            amount = pool_amount - paid if place == places_paid else _round(pool_amount * pct / 100)
            payouts.append(Payout(pm.player_id, pm.player_name, pool.name, value, amount, place))
            paid += amount

    elif pool.split_type == 'per_unit':
        total_units = sum(value for _, value in ranked)
        if total_units == 0:
            return payouts
        per_unit = pool_amount / total_units
        eligible = [(pm, value) for pm, value in ranked if value > 0]
        paid = 0
        for i, (pm, value) in enumerate(eligible):
            amount = pool_amount - paid if i == len(eligible) - 1 else _round(value * per_unit)
            payouts.append(Payout(pm.player_id, pm.player_name, pool.name, value, amount))
            paid += amount

    else:
        pm, value = ranked[0]
        payouts.append(Payout(pm.player_id, pm.player_name, pool.name, value, pool_amount, 1))

    return payouts


def calculate_all_payouts(
    pools: Sequence[PoolConfig],
    player_metrics: Sequence[PlayerMetrics],
    pot_total: float,
) -> list[Payout]:
    """Split the pot across pools by percentage (the last takes the remainder) and pay each."""
    payouts: list[Payout] = []
    allocated = 0
    for i, pool in enumerate(pools):
        amount = pot_total - allocated if i == len(pools) - 1 else _round(pot_total * pool.pct / 100)
        payouts.extend(calculate_pool_payouts(pool, player_metrics, amount))
        allocated += amount
    return payouts


def calculate_net_positions(
    payouts: Iterable[Payout],
    player_metrics: Sequence[PlayerMetrics],
    pot_total: float,
) -> dict[str, float]:
    """Each player's winnings less an equal share of the pot, to the cent."""
    if not player_metrics:
        return {}
    buy_in = pot_total / len(player_metrics)

    net = {pm.player_id: -buy_in for pm in player_metrics}
    for payout in payouts:
        net[payout.player_id] = net.get(payout.player_id, -buy_in) + payout.amount
    return {player_id: _round(value, 2) for player_id, value in net.items()}


def reconcile_debts(
    net_positions: Mapping[str, float],
    player_names: Optional[Mapping[str, str]] = None,
) -> list[DebtRecord]:
    """
    Settle net positions with as few payments as the greedy match allows.

    The biggest debtor pays the biggest creditor until one of them is square,
    then the next in line steps up. If A owes B 10 and B owes C 10, A pays
    C 10 and B is square.
    """
    names = player_names or {}
    creditors = sorted(
        ([pid, amount] for pid, amount in net_positions.items() if amount > SETTLED),
        key=lambda c: c[1], reverse=True,
    )
    debtors = sorted(
        ([pid, -amount] for pid, amount in net_positions.items() if amount < -SETTLED),
        key=lambda d: d[1], reverse=True,
    )

    debts: list[DebtRecord] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        payment = min(creditor[1], debtor[1])
        if payment > SETTLED:
            debts.append(DebtRecord(
                from_player_id=debtor[0],
                from_player_name=names.get(debtor[0], debtor[0]),
                to_player_id=creditor[0],
                to_player_name=names.get(creditor[0], creditor[0]),
                amount=_round(payment, 2),
            ))
        creditor[1] -= payment
        debtor[1] -= payment
        if creditor[1] < SETTLED:
            i += 1
        if debtor[1] < SETTLED:
            j += 1

    return debts


def calculate_settlement(
    pools: Sequence[PoolConfig],
    player_metrics: Sequence[PlayerMetrics],
    pot_total: float,
) -> SettlementResult:
    """
    Pay every pool, then work out who owes whom.

    Example:
        pools = [PoolConfig(name='points', pct=100, metric='points')]
        result = calculate_settlement(pools, scoreboard_metrics(scoreboard), 80)
        for debt in result.debts:
            print(f'{debt.from_player_name} pays {debt.to_player_name} {debt.amount}')
    """
    if not player_metrics:
        return SettlementResult(pot_total=pot_total, buy_in=0)

    payouts = calculate_all_payouts(pools, player_metrics, pot_total)
    net_positions = calculate_net_positions(payouts, player_metrics, pot_total)
    names = {pm.player_id: pm.player_name for pm in player_metrics}

    result = SettlementResult(
        pot_total=pot_total,
        buy_in=pot_total / len(player_metrics),
        payouts=payouts,
        net_positions=net_positions,
        debts=reconcile_debts(net_positions, names),
    )
    logger.info(f'Settled pot of {pot_total}: {len(result.payouts)} payouts, {len(result.debts)} payments')
    return result


def scoreboard_metrics(
    scoreboard: Scoreboard,
    player_names: Optional[Mapping[str, str]] = None,
) -> list[PlayerMetrics]:
    """
    Settlement metrics for each player from a scored game.

    Every player gets 'points' (points total), 'junk' (junk points total)
    and a count of each junk they were awarded, keyed by junk name, so a
    skins pool can pay on 'skin'.
    """
    names = player_names or {}
    metrics: dict[str, PlayerMetrics] = {}
    for player_id, total in scoreboard.cumulative.players.items():
        metrics[player_id] = PlayerMetrics(
            player_id=player_id,
            player_name=names.get(player_id, player_id),
            metrics={'points': total.points_total, 'junk': total.junk_total},
        )

    counts: dict[str, dict[str, int]] = {player_id: {} for player_id in metrics}
    junk_names: set[str] = set()
    for hole in scoreboard.holes.values():
        for player_id, player in hole.players.items():
            for junk in player.junk:
                junk_names.add(junk.name)
                if player_id in counts:
                    counts[player_id][junk.name] = counts[player_id].get(junk.name, 0) + 1

    # Everyone gets every junk name, so a player who won none has a count of 0
    for player_id, pm in metrics.items():
        for name in sorted(junk_names):
            pm.metrics.setdefault(name, counts[player_id].get(name, 0))

    return list(metrics.values())
