#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Stable Unit Engine Step by Step

This is a pedagogical demonstration of how the collateralized-debt engine
works. Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Positions     - Deployment, deposit and mint, health-factor limits
  4-5:  Liquidation   - A price crash and the liquidator's payout
  6-7:  Safety        - Stale oracles, conservation of the world ledger
  8:    Stress        - Replaying a simulated price path

Run:
    python demo.py             # Interactive mode (press Enter for each step)
    python demo.py --quick     # Run all steps without pausing
    python demo.py --verbose   # Also show the engine's debug log
"""

from dataclasses import dataclass
from datetime import timedelta
import logging
import sys

from stableledger import (
    Deployment, deploy_local, to_base_units, from_base_units,
    simulate_price_path, PriceShockSimulation,
    HealthFactorBroken, StalePriceData,
    MAX_HEALTH_FACTOR, PRECISION,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # Position (whole tokens)
    user_collateral: int = 10
    user_debt: int = 100

    # Liquidator position (whole tokens)
    liquidator_collateral: int = 20
    liquidator_debt: int = 100

    # Crash price (8 decimals)
    crash_price: int = 18_00000000

    # Stress simulation
    sim_steps: int = 72
    sim_volatility: float = 1.5
    sim_seed: int = 2024


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv
VERBOSE = "--verbose" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Format an 18-decimal amount for display."""
    return f"{from_base_units(amount):,.4f}"


def fmt_hf(health_factor: int) -> str:
    if health_factor == MAX_HEALTH_FACTOR:
        return "inf (no debt)"
    return f"{health_factor / PRECISION:.4f}"


def show_position(d: Deployment, user: str):
    engine = d.engine
    position = engine.get_position(user)
    collateral = ", ".join(f"{fmt(q)} {a}" for a, q in position.collateral.items() if q) or "none"
    print(f"  {user:<12} collateral: {collateral}")
    print(f"  {'':<12} debt:       {fmt(position.debt)} DSC")
    print(f"  {'':<12} health:     {fmt_hf(engine.get_health_factor(user))}")


# ============================================================================
# PHASE 1: POSITIONS (Steps 1-3)
# ============================================================================

def step_01_deploy() -> Deployment:
    """Deploy tokens, feeds and the engine on a fresh ledger."""
    step_header(1, "DEPLOYMENT", "Stand up collateral tokens, price feeds and the engine")

    d = deploy_local()
    print(f"Ledger '{d.ledger.name}' at {d.ledger.current_time}")
    print(f"Units registered: {d.ledger.list_units()}")
    for symbol, feed in d.price_feeds.items():
        print(f"  {symbol}: ${feed.latest_answer / 10**8:,.2f}  ({feed.description})")

    section_header("Who may mint the stable unit?")
    print(f"  DSC owner: {d.stable_token.owner}")
    print("  Ownership was handed to the engine once and is now locked.")
    return d


def step_02_open_position(d: Deployment) -> Deployment:
    """Deposit collateral and mint stable units against it."""
    step_header(2, "OPEN A POSITION", "Lock 10 WETH and mint 100 DSC against it")

    weth = d.collateral_tokens["WETH"]
    amount = to_base_units(CONFIG.user_collateral)
    weth.mint("alice", amount)
    weth.approve("alice", d.engine.address, amount)
    print(f"alice holds {fmt(weth.balance_of('alice'))} WETH and approved the engine")

    d.engine.deposit_and_mint("alice", "WETH", amount, to_base_units(CONFIG.user_debt))

    section_header("Position")
    show_position(d, "alice")
    info = d.engine.get_account_information("alice")
    print(f"\n  Collateral value: ${fmt(info.collateral_value_usd)}")
    print("  Only 50% of it counts, so health = 10000 / 100 = 100")
    return d


def step_03_health_limit(d: Deployment) -> Deployment:
    """Show that a mint breaking the health factor is rejected atomically."""
    step_header(3, "HEALTH FACTOR LIMIT", "Try to mint past 50% of collateral value")

    before = d.engine.get_position("alice")
    try:
        d.engine.mint_debt("alice", to_base_units(10_000))
    except HealthFactorBroken as exc:
        print(f"REJECTED: {exc}")
        print(f"  would-be health factor: {fmt_hf(exc.health_factor)}")

    after = d.engine.get_position("alice")
    print(f"\nPosition unchanged: {before == after}")
    print(f"DSC supply: {fmt(d.stable_token.total_supply())}")
    return d


# ============================================================================
# PHASE 2: LIQUIDATION (Steps 4-5)
# ============================================================================

def step_04_crash(d: Deployment) -> Deployment:
    """Crash WETH and watch the position become liquidatable."""
    step_header(4, "PRICE CRASH", "WETH falls from $2000 to $18")

    weth = d.collateral_tokens["WETH"]
    amount = to_base_units(CONFIG.liquidator_collateral)
    weth.mint("liquidator", amount)
    weth.approve("liquidator", d.engine.address, amount)
    d.engine.deposit_and_mint("liquidator", "WETH", amount, to_base_units(CONFIG.liquidator_debt))
    print("liquidator opened a 20 WETH / 100 DSC position before the crash")

    d.feed("WETH").update_answer(CONFIG.crash_price)

    section_header("After the crash")
    show_position(d, "alice")
    print(f"\n  status: {d.engine.get_position_status('alice')}")
    show_position(d, "liquidator")
    return d


def step_05_liquidate(d: Deployment) -> Deployment:
    """Cover alice's debt and collect collateral plus the 10% bonus."""
    step_header(5, "LIQUIDATION", "Repay 100 DSC of alice's debt for WETH plus a 10% bonus")

    debt = to_base_units(CONFIG.user_debt)
    quote = d.engine.quote_liquidation("WETH", debt)
    print(f"Quote: {fmt(quote.collateral_for_debt)} WETH + {fmt(quote.bonus)} bonus "
          f"= {fmt(quote.total_collateral)} WETH")

    d.stable_token.approve("liquidator", d.engine.address, debt)
    d.engine.liquidate("liquidator", "WETH", "alice", debt)

    section_header("After liquidation")
    show_position(d, "alice")
    show_position(d, "liquidator")
    weth = d.collateral_tokens["WETH"]
    print(f"\n  liquidator wallet: {fmt(weth.balance_of('liquidator'))} WETH")
    print(f"  alice still holds {fmt(d.stable_token.balance_of('alice'))} DSC")
    return d


# ============================================================================
# PHASE 3: SAFETY (Steps 6-7)
# ============================================================================

def step_06_stale_oracle(d: Deployment) -> Deployment:
    """Let the feed go stale and see operations refuse to price."""
    step_header(6, "STALE ORACLE", "Prices older than three hours are unusable")

    d.ledger.advance_time(d.ledger.current_time + timedelta(hours=3, minutes=1))
    print(f"Clock advanced to {d.ledger.current_time}")
    try:
        d.engine.get_health_factor("liquidator")
    except StalePriceData as exc:
        print(f"REJECTED: {exc}")

    d.feed("WETH").update_answer(CONFIG.crash_price)
    print("Feed updated; pricing works again:")
    show_position(d, "liquidator")
    return d


def step_07_conservation(d: Deployment) -> Deployment:
    """Prove that every unit still sums to zero across all wallets."""
    step_header(7, "CONSERVATION", "Every unit sums to zero, the system wallet included")

    result = d.ledger.verify_double_entry()
    for unit, supply in result['supplies'].items():
        print(f"  {unit:<5} issued supply {fmt(supply)}")
    print(f"\nDouble entry valid: {result['valid']}")
    print(f"DSC supply == total debt: {d.stable_token.total_supply() == d.engine.total_debt()}")
    print(f"Transactions in log: {len(d.ledger.transaction_log)}")
    return d


# ============================================================================
# PHASE 4: STRESS (Step 8)
# ============================================================================

def step_08_stress():
    """Replay a simulated WETH path against fresh positions."""
    step_header(8, "STRESS SIMULATION", "Walk a volatile WETH path hour by hour")

    d = deploy_local()
    weth = d.collateral_tokens["WETH"]
    for user, debt in [("carol", 5_000), ("dave", 8_000), ("erin", 9_500)]:
        weth.mint(user, to_base_units(10))
        weth.approve(user, d.engine.address, to_base_units(10))
        d.engine.deposit_and_mint(user, "WETH", to_base_units(10), to_base_units(debt))
        print(f"  {user:<6} 10 WETH / {debt:>5,} DSC  health {fmt_hf(d.engine.get_health_factor(user))}")

    path = simulate_price_path(
        d.feed("WETH").latest_answer,
        d.ledger.current_time,
        CONFIG.sim_steps,
        volatility=CONFIG.sim_volatility,
        seed=CONFIG.sim_seed,
    )
    sim = PriceShockSimulation(d.engine, d.ledger, d.price_feeds)
    steps = sim.run({"WETH": path})

    section_header("Summary")
    low = min(answer for _, answer in path)
    print(f"  WETH low over {len(steps)} hours: ${low / 10**8:,.2f}")
    for key, value in sim.summary().items():
        print(f"  {key}: {value}")


def main():
    """Run the complete tutorial."""
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    print("=" * 70)
    print("       STABLELEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    d = step_01_deploy()
    wait_for_enter()

    for step in (step_02_open_position, step_03_health_limit, step_04_crash,
                 step_05_liquidate, step_06_stale_oracle, step_07_conservation):
        d = step(d)
        wait_for_enter()

    step_08_stress()

    print(f"\n{'='*70}")
    print("TUTORIAL COMPLETE")
    print(f"{'='*70}")
    print("""
    Next steps:
      - See stableledger/engine.py for the operations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
