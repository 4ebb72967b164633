import logging
from decimal import Decimal, ROUND_DOWN

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from config import CHAIN_CONFIG

logger = logging.getLogger(__name__)

# ERC20 ABI for transfers and balance checks
ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function"
    }
]


class ChainError(Exception):
    reason = 'chain_error'


class ChainNotConfigured(ChainError):
    """No signing account available for the platform wallet"""
    reason = 'not_configured'


class InvalidWalletAddress(ChainError):
    reason = 'invalid_address'


class TransferRejected(ChainError):
    """The node refused the transaction or it reverted on-chain"""
    reason = 'rejected'


class ChainNetworkError(ChainError):
    reason = 'network_failure'


class ConfirmationTimeout(ChainError):
    reason = 'confirmation_timeout'


def mask_wallet_address(wallet_address: str) -> str:
    """Mask wallet address for logging"""
    if not wallet_address or len(wallet_address) < 10:
        return wallet_address
    return wallet_address[:6] + "..." + wallet_address[-4:]


def to_checksum(address: str) -> str:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidWalletAddress(f"Malformed wallet address: {address!r}")
    return Web3.to_checksum_address(address)


class RewardChainClient:
    """Reward token transfers from the platform funding account using a direct private key"""

    def __init__(self, settings=None, w3=None):
        self.settings = dict(CHAIN_CONFIG)
        self.settings.update(settings or {})

        self.chain_id = self.settings['CHAIN_ID']
        self.token_decimals = self.settings['TOKEN_DECIMALS']
        self.token_symbol = self.settings['TOKEN_SYMBOL']
        self.confirmation_timeout = self.settings['CONFIRMATION_TIMEOUT']

        self.w3 = w3 or Web3(Web3.HTTPProvider(self.settings['RPC_URL']))

        # REWARD_KEY signs transfers out of the funding account
        self.account = None
        reward_key = self.settings.get('REWARD_KEY')
        if reward_key:
            if not reward_key.startswith('0x'):
                reward_key = '0x' + reward_key
            try:
                self.account = Account.from_key(reward_key)
            except Exception as key_error:
                logger.error(f"❌ Failed to load REWARD_KEY: {key_error}")
        else:
            logger.warning("⚠️ REWARD_KEY not configured - reward claims will be simulated")

        self.token_address = Web3.to_checksum_address(self.settings['TOKEN_CONTRACT'])
        self.token_contract = self.w3.eth.contract(address=self.token_address, abi=ERC20_ABI)

        logger.info("💰 Reward Chain Client initialized")
        logger.info(f"   Platform address: {self.platform_address}")
        logger.info(f"   Reward token: {self.token_address} ({self.token_decimals} decimals)")

    @property
    def is_configured(self) -> bool:
        return self.account is not None

    @property
    def platform_address(self):
        return self.account.address if self.account else None

    def to_base_units(self, amount) -> int:
        amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        return int((amount * (Decimal(10) ** self.token_decimals)).to_integral_value(rounding=ROUND_DOWN))

    def from_base_units(self, units: int) -> Decimal:
        return Decimal(units) / (Decimal(10) ** self.token_decimals)

    def explorer_url(self, tx_hash: str) -> str:
        return f"{self.settings['EXPLORER_TX_URL']}{tx_hash}"

    def account_exists(self, address: str) -> bool:
        """An EVM account exists once it has sent a transaction or holds native balance"""
        checksum = to_checksum(address)
        try:
            if self.w3.eth.get_transaction_count(checksum) > 0:
                return True
            return self.w3.eth.get_balance(checksum) > 0
        except Exception as e:
            raise ChainNetworkError(f"Account lookup failed: {e}") from e

    def _token_balance_units(self, checksum: str) -> int:
        try:
            return self.token_contract.functions.balanceOf(checksum).call()
        except Exception as e:
            raise ChainNetworkError(f"Balance lookup failed: {e}") from e

    def is_funded(self, amount_units: int) -> bool:
        """Platform account holds enough reward tokens and some native balance for gas"""
        if not self.is_configured:
            return False

        token_units = self._token_balance_units(self.platform_address)
        try:
            gas_balance = self.w3.eth.get_balance(self.platform_address)
        except Exception as e:
            raise ChainNetworkError(f"Gas balance lookup failed: {e}") from e

        if token_units < amount_units:
            logger.warning(f"⚠️ Platform wallet token balance too low: {token_units} < {amount_units}")
            return False
        if gas_balance <= 0:
            logger.warning("⚠️ Platform wallet has no native balance for gas fees")
            return False
        return True

    def get_token_balance(self, address: str) -> Decimal:
        return self.from_base_units(self._token_balance_units(to_checksum(address)))

    def transfer(self, to_address: str, amount_units: int) -> str:
        """
        Sign and submit an ERC20 transfer from the platform account

        Args:
            to_address: Recipient wallet address
            amount_units: Amount in the token's smallest unit

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        if not self.is_configured:
            raise ChainNotConfigured("Reward wallet not configured")

        recipient = to_checksum(to_address)

        try:
            nonce = self.w3.eth.get_transaction_count(self.account.address)
            gas_price = int(self.w3.eth.gas_price * self.settings['GAS_PRICE_BUFFER'])

            transaction = self.token_contract.functions.transfer(
                recipient,
                amount_units
            ).build_transaction({
                'from': self.account.address,
                'nonce': nonce,
                'gas': self.settings['GAS_LIMIT'],
                'gasPrice': gas_price,
                'chainId': self.chain_id
            })

            signed_txn = self.w3.eth.account.sign_transaction(transaction, private_key=self.account.key)

            logger.info(f"📡 Sending reward transfer to {mask_wallet_address(recipient)}...")
            tx_hash = self.w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        except (ContractLogicError, Web3RPCError) as e:
            raise TransferRejected(f"Transfer rejected: {e}") from e
        except Exception as e:
            raise ChainNetworkError(f"Transfer submission failed: {e}") from e

        tx_hash_hex = tx_hash.hex()
        if not tx_hash_hex.startswith('0x'):
            tx_hash_hex = '0x' + tx_hash_hex

        logger.info(f"🔗 Transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    def wait_for_confirmation(self, tx_hash: str):
        """Block until the transaction is mined, bounded by the confirmation timeout"""
        try:
            logger.info(f"⏳ Waiting for transaction {tx_hash} confirmation...")
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirmation_timeout)
        except TimeExhausted as e:
            raise ConfirmationTimeout(f"Transaction {tx_hash} not confirmed after {self.confirmation_timeout}s") from e
        except Exception as e:
            raise ChainNetworkError(f"Receipt fetch failed: {e}") from e

        if receipt.status != 1:
            logger.error(f"❌ Transaction failed on-chain: {tx_hash}")
            raise TransferRejected(f"Transaction {tx_hash} failed on-chain")

        logger.info(f"✅ Transaction confirmed: {tx_hash}")
        logger.info(f"⛽ Gas used: {receipt.gasUsed}")
        logger.info(f"🧾 Block: {receipt.blockNumber}")
        return receipt
