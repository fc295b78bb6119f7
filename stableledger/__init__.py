"""
stableledger - Over-collateralized stable unit engine

Users lock collateral tokens, mint a USD-pegged stable unit against them,
and keep their health factor above 1.0. Undercollateralized positions can be
liquidated for a 10% collateral bonus. Every balance lives in one world-state
Ledger, which is also the clock the price oracles are checked against.

Usage:
    from stableledger import deploy_local, to_base_units

    d = deploy_local()                      # WETH at $2000, WBTC at $1000
    weth = d.collateral_tokens["WETH"]
    weth.mint("alice", to_base_units(10))
    weth.approve("alice", d.engine.address, to_base_units(10))

    d.engine.deposit_and_mint("alice", "WETH", to_base_units(10), to_base_units(100))
    d.engine.get_health_factor("alice")     # 100 * 10**18

    d.feed("WETH").update_answer(18_00000000)
    d.engine.is_liquidatable("alice")       # True
"""

# Core types
from .core import (
    LedgerView,
    EngineView,
    PriceFeed,
    Transactional,
    Move,
    Transaction,
    Unit,
    RoundData,
    CollateralAssetConfig,
    Position,
    AccountInformation,
    CollateralDeposited,
    CollateralRedeemed,
    ExecuteResult,
    to_base_units,
    from_base_units,
    # Constants
    SYSTEM_WALLET,
    TOKEN_DECIMALS,
    FEED_DECIMALS,
    PRECISION,
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_PRECISION,
    LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR,
    MAX_HEALTH_FACTOR,
    ORACLE_TIMEOUT,
    # Exceptions
    LedgerError,
    UnitNotRegistered,
    TokenError,
    Unauthorized,
    OwnershipLocked,
    MustBeMoreThanZero,
    BurnAmountExceedsBalance,
    InvalidRecipient,
    EngineError,
    NeedsMoreThanZero,
    TokenNotAllowed,
    TokenAddressesAndPriceFeedAddressesMustBeSameLength,
    RedeemExceedsDeposited,
    DebtUnderflow,
    HealthFactorBroken,
    HealthFactorAboveThreshold,
    HealthFactorNotImproved,
    CollateralTransferFailed,
    TransferFailed,
    MintFailed,
    InvalidPrice,
    UnsupportedFeedDecimals,
    StalePriceData,
    ReentrantCall,
)

# Ledger and tokens
from .ledger import Ledger
from .token import Token, CollateralToken, StableUnitToken

# Pricing
from .pricing_source import StaticPriceFeed, TimeSeriesPriceFeed
from .oracle import (
    OracleAdapter,
    stale_check_latest_round_data,
    usd_value,
    token_amount_from_usd,
)

# Engine
from .registry import CollateralRegistry
from .health import (
    calculate_health_factor,
    is_healthy,
    position_status,
    max_additional_debt,
    POSITION_STATUS_HEALTHY,
    POSITION_STATUS_LIQUIDATABLE,
)
from .liquidation import LiquidationQuote, quote_liquidation
from .guard import ReentrancyGuard, AtomicBoundary, non_reentrant_atomic
from .engine import StableEngine

# Deployment
from .config import CollateralSpec, NetworkConfig, local_network_config
from .deploy import Deployment, deploy_engine, deploy_local

# Simulation
from .simulation import simulate_price_path, SimulationStep, PriceShockSimulation

__all__ = [
    # Core
    'LedgerView', 'EngineView', 'PriceFeed', 'Transactional',
    'Move', 'Transaction', 'Unit', 'RoundData', 'CollateralAssetConfig',
    'Position', 'AccountInformation', 'CollateralDeposited', 'CollateralRedeemed',
    'ExecuteResult', 'to_base_units', 'from_base_units',
    'SYSTEM_WALLET', 'TOKEN_DECIMALS', 'FEED_DECIMALS',
    'PRECISION', 'ADDITIONAL_FEED_PRECISION',
    'LIQUIDATION_THRESHOLD', 'LIQUIDATION_PRECISION', 'LIQUIDATION_BONUS',
    'MIN_HEALTH_FACTOR', 'MAX_HEALTH_FACTOR', 'ORACLE_TIMEOUT',
    'LedgerError', 'UnitNotRegistered',
    'TokenError', 'Unauthorized', 'OwnershipLocked', 'MustBeMoreThanZero',
    'BurnAmountExceedsBalance', 'InvalidRecipient',
    'EngineError', 'NeedsMoreThanZero', 'TokenNotAllowed',
    'TokenAddressesAndPriceFeedAddressesMustBeSameLength',
    'RedeemExceedsDeposited', 'DebtUnderflow', 'HealthFactorBroken',
    'HealthFactorAboveThreshold', 'HealthFactorNotImproved',
    'CollateralTransferFailed', 'TransferFailed', 'MintFailed',
    'StalePriceData', 'InvalidPrice', 'UnsupportedFeedDecimals', 'ReentrantCall',
    # Ledger and tokens
    'Ledger', 'Token', 'CollateralToken', 'StableUnitToken',
    # Pricing
    'StaticPriceFeed', 'TimeSeriesPriceFeed',
    'OracleAdapter', 'stale_check_latest_round_data', 'usd_value', 'token_amount_from_usd',
    # Engine
    'CollateralRegistry',
    'calculate_health_factor', 'is_healthy', 'position_status', 'max_additional_debt',
    'POSITION_STATUS_HEALTHY', 'POSITION_STATUS_LIQUIDATABLE',
    'LiquidationQuote', 'quote_liquidation',
    'ReentrancyGuard', 'AtomicBoundary', 'non_reentrant_atomic',
    'StableEngine',
    # Deployment
    'CollateralSpec', 'NetworkConfig', 'local_network_config',
    'Deployment', 'deploy_engine', 'deploy_local',
    # Simulation
    'simulate_price_path', 'SimulationStep', 'PriceShockSimulation',
]

__version__ = '1.0.0'
