"""Static asset → chain → network registry used to resolve swap endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Any, Dict, Optional, Union

from eth_utils import is_hex_address, to_checksum_address

from .errors import UnsupportedAssetError

NATIVE_ASSET_ADDRESS = '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'

NETWORKS = ('mainnet', 'testnet')

# chain → network → chain id understood by the routing service.
# A chain without an entry for a network is not routable on that network.
CHAIN_NETWORKS: Dict[str, Dict[str, Any]] = {
    'ethereum': {
        'chain_type': 'evm',
        'networks': {'mainnet': 1, 'testnet': 11155111},
    },
    'polygon': {
        'chain_type': 'evm',
        'networks': {'mainnet': 137, 'testnet': 80002},
    },
    'arbitrum': {
        'chain_type': 'evm',
        'networks': {'mainnet': 42161, 'testnet': 421614},
    },
    'optimism': {
        'chain_type': 'evm',
        'networks': {'mainnet': 10, 'testnet': 11155420},
    },
    'bsc': {
        'chain_type': 'evm',
        'networks': {'mainnet': 56, 'testnet': 97},
    },
    'avalanche': {
        'chain_type': 'evm',
        'networks': {'mainnet': 43114, 'testnet': 43113},
    },
    'solana': {
        'chain_type': 'solana',
        'native_address': '11111111111111111111111111111111',
        'networks': {'mainnet': 1151111081099710},
    },
    'bitcoin': {
        'chain_type': 'bitcoin',
        'networks': {},
    },
}

# Asset symbol → chain, decimals and token contract per network.
# Native assets carry no contracts; the chain's native placeholder is used instead.
ASSETS: Dict[str, Dict[str, Any]] = {
    'ETH': {'chain': 'ethereum', 'decimals': 18, 'name': 'Ether'},
    'USDC': {
        'chain': 'ethereum',
        'decimals': 6,
        'name': 'USD Coin',
        'contracts': {
            'mainnet': '0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48',
            'testnet': '0x1c7d4b196cb0c7b01d743fbc6116a902379c7238',
        },
    },
    'USDT': {
        'chain': 'ethereum',
        'decimals': 6,
        'name': 'Tether USD',
        'contracts': {'mainnet': '0xdac17f958d2ee523a2206206994597c13d831ec7'},
    },
    'DAI': {
        'chain': 'ethereum',
        'decimals': 18,
        'name': 'Dai Stablecoin',
        'contracts': {'mainnet': '0x6b175474e89094c44da98b954eedeac495271d0f'},
    },
    'WBTC': {
        'chain': 'ethereum',
        'decimals': 8,
        'name': 'Wrapped Bitcoin',
        'contracts': {'mainnet': '0x2260fac5e5542a773aa44fbcfedf7c193bc2c599'},
    },
    'MATIC': {'chain': 'polygon', 'decimals': 18, 'name': 'Polygon'},
    'PUSDC': {
        'chain': 'polygon',
        'decimals': 6,
        'name': 'USD Coin (Polygon)',
        'contracts': {
            'mainnet': '0x3c499c542cef5e3811e1192ce70d8cc03d5c3359',
            'testnet': '0x41e94eb019c0762f9bfcf9fb1e58725bfb0e7582',
        },
    },
    'PWETH': {
        'chain': 'polygon',
        'decimals': 18,
        'name': 'Wrapped Ether (Polygon)',
        'contracts': {'mainnet': '0x7ceb23fd6bc0add59e62ac25578270cff1b9f619'},
    },
    'ARBETH': {'chain': 'arbitrum', 'decimals': 18, 'name': 'Ether (Arbitrum)'},
    'ARBUSDC': {
        'chain': 'arbitrum',
        'decimals': 6,
        'name': 'USD Coin (Arbitrum)',
        'contracts': {'mainnet': '0xaf88d065e77c8cc2239327c5edb3a432268e5831'},
    },
    'OPTETH': {'chain': 'optimism', 'decimals': 18, 'name': 'Ether (Optimism)'},
    'BNB': {'chain': 'bsc', 'decimals': 18, 'name': 'BNB'},
    'AVAX': {'chain': 'avalanche', 'decimals': 18, 'name': 'Avalanche'},
    'SOL': {'chain': 'solana', 'decimals': 9, 'name': 'Solana'},
    'BTC': {'chain': 'bitcoin', 'decimals': 8, 'name': 'Bitcoin'},
}


@dataclass(frozen=True)
class AssetInfo:
    """Registry entry for one asset."""

    symbol: str
    chain: str
    decimals: int
    name: str = ''
    contract_address: Optional[str] = None


def get_asset(symbol: str, network: Optional[str] = None) -> AssetInfo:
    """Look up an asset; with ``network`` set, its contract for that network."""

    entry = ASSETS.get(symbol)
    if entry is None:
        raise UnsupportedAssetError(symbol, network)
    contract = None
    contracts = entry.get('contracts')
    if contracts is not None and network is not None:
        contract = contracts.get(network)
        if contract is None:
            raise UnsupportedAssetError(symbol, network)
    return AssetInfo(
        symbol=symbol,
        chain=entry['chain'],
        decimals=int(entry['decimals']),
        name=entry.get('name', ''),
        contract_address=contract,
    )


def resolve_chain_id(symbol: str, network: str) -> int:
    """Chain id of the asset's chain on ``network``; raises when not routable."""

    asset = get_asset(symbol, network)
    chain = CHAIN_NETWORKS.get(asset.chain) or {}
    chain_id = (chain.get('networks') or {}).get(network)
    if chain_id is None:
        raise UnsupportedAssetError(symbol, network)
    return int(chain_id)


def token_address(symbol: str, network: str) -> str:
    """Contract address of the asset, or its chain's native placeholder."""

    asset = get_asset(symbol, network)
    if asset.contract_address:
        return asset.contract_address
    chain = CHAIN_NETWORKS.get(asset.chain) or {}
    return chain.get('native_address', NATIVE_ASSET_ADDRESS)


def chain_type(chain: str) -> str:
    return (CHAIN_NETWORKS.get(chain) or {}).get('chain_type', 'unknown')


def format_address(chain: str, address: str) -> str:
    """Render ``address`` the way ``chain`` expects it (EIP-55 for EVM chains)."""

    if chain_type(chain) == 'evm' and is_hex_address(address):
        return to_checksum_address(address)
    return address


def _precision_for(value: Decimal, decimals: int) -> int:
    # Enough significant digits to scale by 10**decimals without rounding
    sign, digits, exponent = value.as_tuple()
    return max(28, len(digits) + abs(int(exponent)) + decimals + 2)


def currency_to_unit(asset: AssetInfo, amount: Union[Decimal, int, str]) -> int:
    """Display units → integer base units, truncating sub-unit dust."""

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount {amount!r}")
    with localcontext() as ctx:
        ctx.prec = _precision_for(value, asset.decimals)
        scaled = (value * (Decimal(10) ** asset.decimals)).quantize(Decimal('1'), rounding=ROUND_DOWN)
    return int(scaled)


def unit_to_currency(asset: AssetInfo, amount: Union[int, str]) -> Decimal:
    """Integer base units → display units."""

    value = Decimal(str(amount))
    with localcontext() as ctx:
        ctx.prec = _precision_for(value, asset.decimals)
        return value / (Decimal(10) ** asset.decimals)
