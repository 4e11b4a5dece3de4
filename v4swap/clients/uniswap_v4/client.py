"""Uniswap v4 client for Universal Router swap workflows.

Wires the quote engine, Permit2 signer, command encoder and swap
orchestrator from ``Settings`` so callers only deal with token symbols,
amounts and progress records.
"""

from __future__ import annotations

from eth_account import Account
from web3 import Web3

from v4swap.clients.uniswap_v4.balances import BalanceReader, TokenFaucet
from v4swap.clients.uniswap_v4.errors import TransactionReverted, WalletNotConnected
from v4swap.clients.uniswap_v4.gas import GasManager
from v4swap.clients.uniswap_v4.permit2 import Permit2Client, PermitSigner
from v4swap.clients.uniswap_v4.quote import QuoteEngine
from v4swap.clients.uniswap_v4.router import Router
from v4swap.clients.uniswap_v4.rpc import RPC
from v4swap.clients.uniswap_v4.wallet import LocalAccountSigner, TxReceiptStatus, Web3Broadcaster
from v4swap.logging import log
from v4swap.models.chain import TokenConfig
from v4swap.models.swap import QuoteMode, QuoteRequest, QuoteResult
from v4swap.pipelines.swap.orchestrator import ConfirmFn, SwapOrchestrator
from v4swap.settings.config import Settings, settings as default_settings


class UniswapV4ClientError(Exception):
    """Raised for Uniswap v4 client configuration failures."""


class UniswapV4Client:
    """Quote and swap against the single configured Uniswap v4 pool."""

    def __init__(
        self,
        app_settings: Settings | None = None,
        private_key: str | None = None,
        rpc: RPC | None = None,
    ) -> None:
        self.settings = app_settings or default_settings
        self.chain_config = self.settings.chain_config()
        if not self.chain_config.quoter:
            raise UniswapV4ClientError(
                f"Quoter not configured for chain={self.chain_config.name}. "
                "Set QUOTER_ADDRESS or register the chain quoter in v4swap/models/chain.py."
            )

        resolved_rpc = self.settings.eth_rpc_url
        if rpc is None and not resolved_rpc:
            raise UniswapV4ClientError("Missing RPC URL: set ETH_RPC_URL in .env")
        self.rpc = rpc or RPC(resolved_rpc)

        pool = self.settings.pool_key_config()
        wrapped_native = self.chain_config.wrapped_native if self.settings.pool_wraps_native else None
        if self.settings.pool_wraps_native and not wrapped_native:
            raise UniswapV4ClientError(f"No wrapped native token registered for chain={self.chain_config.name}")

        self.quote_engine = QuoteEngine(
            self.rpc,
            quoter_address=Web3.to_checksum_address(self.chain_config.quoter),
            fee=pool["fee"],
            tick_spacing=pool["tick_spacing"],
            hooks=pool["hooks"],
            wrapped_native=wrapped_native,
        )
        self.permit2 = Permit2Client(self.rpc, self.chain_config.permit2)
        self.permit_signer = PermitSigner(self.permit2, validity_seconds=self.settings.swap_deadline_seconds)
        self.router = Router(self.chain_config.universal_router)
        self.gas = GasManager(self.rpc)
        self.balances = BalanceReader(self.rpc)
        self.faucet = TokenFaucet(self.rpc)
        self.tokens = self.settings.tokens()

        self.account = None
        self.signer = None
        self.broadcaster = None
        resolved_private_key = private_key or self.settings.private_key
        if resolved_private_key:
            self.account = Account.from_key(resolved_private_key)
            self.signer = LocalAccountSigner(self.account)
            self.broadcaster = Web3Broadcaster(
                self.rpc,
                self.account,
                self.gas,
                chain_id=self.chain_config.chain_id,
                gas_limit=self.settings.swap_gas_limit,
                receipt_timeout=self.settings.receipt_timeout_seconds,
                poll_latency=self.settings.receipt_poll_seconds,
            )
        else:
            log.warning("No PRIVATE_KEY configured; quotes and balances only, swaps will fail")

        log.info(
            f"UniswapV4Client initialized chain={self.chain_config.name} chain_id={self.chain_config.chain_id} "
            f"router={self.router.address} wallet={self.address}"
        )

    @property
    def address(self) -> str | None:
        return self.signer.address if self.signer else None

    def token(self, symbol: str) -> TokenConfig:
        try:
            return self.tokens[symbol.strip().upper()]
        except KeyError as exc:
            raise UniswapV4ClientError(f"Unknown token '{symbol}'; known: {sorted(self.tokens)}") from exc

    def get_explorer_tx_url(self, tx_hash: str) -> str | None:
        return self.chain_config.explorer_tx_url(tx_hash)

    async def quote(
        self,
        sell_symbol: str,
        buy_symbol: str,
        amount: int,
        mode: QuoteMode = QuoteMode.EXACT_IN,
    ) -> QuoteResult | None:
        sell, buy = self.token(sell_symbol), self.token(buy_symbol)
        request = QuoteRequest(
            token_in=sell.address,
            token_out=buy.address,
            amount=amount,
            sell_decimals=sell.decimals,
            buy_decimals=buy.decimals,
            mode=mode,
        )
        return await self.quote_engine.quote(request)

    async def get_balances(self, owner: str) -> dict[str, int | None]:
        return await self.balances.get_balances(Web3.to_checksum_address(owner), self.tokens.values())

    async def claimable(self, owner: str, symbol: str = "USDT") -> int:
        return await self.faucet.claimable(self.token(symbol).address, owner)

    async def claim(self, symbol: str = "USDT") -> str | None:
        """Claim the wallet's faucet allowance. Returns the tx hash, or None when nothing is claimable."""
        if self.signer is None or self.broadcaster is None:
            raise WalletNotConnected("Connect a wallet before claiming test tokens")
        token = self.token(symbol)
        amount = await self.faucet.claimable(token.address, self.signer.address)
        if amount == 0:
            log.info(f"Nothing to claim token={token.symbol} wallet={self.signer.address}")
            return None
        tx_hash = await self.broadcaster.send_transaction(
            {
                "to": token.address,
                "data": "0x" + TokenFaucet.build_claim_data(amount).hex(),
                "value": 0,
                "gas": self.settings.approve_gas_limit,
            }
        )
        log.info(f"Faucet claim sent token={token.symbol} amount={amount} tx={tx_hash}")
        if await self.broadcaster.wait_for_receipt(tx_hash) is not TxReceiptStatus.SUCCESS:
            raise TransactionReverted(f"Faucet claim {tx_hash} reverted")
        return tx_hash

    def orchestrator(self, confirm: ConfirmFn | None = None) -> SwapOrchestrator:
        return SwapOrchestrator(
            quote_engine=self.quote_engine,
            permit_signer=self.permit_signer,
            router=self.router,
            signer=self.signer,
            broadcaster=self.broadcaster,
            chain_id=self.chain_config.chain_id,
            slippage_bps=self.settings.default_slippage_bps,
            deadline_seconds=self.settings.swap_deadline_seconds,
            approve_gas_limit=self.settings.approve_gas_limit,
            confirm=confirm,
            explorer_tx_url=self.get_explorer_tx_url,
        )
