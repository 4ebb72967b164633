from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3.exceptions import ContractLogicError, TimeExhausted

from conftest import WALLET
from quiz_rewards.blockchain import (
    ChainNetworkError,
    ChainNotConfigured,
    ConfirmationTimeout,
    InvalidWalletAddress,
    RewardChainClient,
    TransferRejected,
    mask_wallet_address,
)

REWARD_KEY = '0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318'
TX_HASH = bytes.fromhex('ab' * 32)


@pytest.fixture
def w3():
    w3 = MagicMock()
    w3.eth.gas_price = 1000
    w3.eth.get_transaction_count.return_value = 3
    w3.eth.get_balance.return_value = 10 ** 18
    w3.eth.send_raw_transaction.return_value = TX_HASH
    return w3


@pytest.fixture
def client(w3):
    return RewardChainClient(settings={'REWARD_KEY': REWARD_KEY, 'TOKEN_DECIMALS': 18}, w3=w3)


def token_functions(w3):
    return w3.eth.contract.return_value.functions


class TestConfiguration:

    def test_loads_platform_account(self, client):
        assert client.is_configured
        assert client.platform_address == Account.from_key(REWARD_KEY).address

    def test_key_without_prefix(self, w3):
        client = RewardChainClient(settings={'REWARD_KEY': REWARD_KEY[2:]}, w3=w3)
        assert client.platform_address == Account.from_key(REWARD_KEY).address

    def test_missing_key_is_unconfigured(self, w3):
        client = RewardChainClient(settings={'REWARD_KEY': None}, w3=w3)
        assert not client.is_configured
        assert client.platform_address is None

    def test_unusable_key_is_unconfigured(self, w3):
        client = RewardChainClient(settings={'REWARD_KEY': '0x1234'}, w3=w3)
        assert not client.is_configured

    def test_base_unit_conversion(self, client):
        assert client.to_base_units(Decimal('3.5')) == 3500000000000000000
        assert client.from_base_units(1250000000000000000) == Decimal('1.25')

    def test_explorer_url(self, w3):
        client = RewardChainClient(settings={'REWARD_KEY': REWARD_KEY, 'EXPLORER_TX_URL': 'https://scan.test/tx/'}, w3=w3)
        assert client.explorer_url('0xabc') == 'https://scan.test/tx/0xabc'


class TestMaskWalletAddress:

    def test_masks_middle(self):
        assert mask_wallet_address(WALLET) == '0xa1a1...a1a1'

    def test_short_values_unchanged(self):
        assert mask_wallet_address('0x12') == '0x12'


class TestAccountChecks:

    def test_account_with_nonce_exists(self, client):
        assert client.account_exists(WALLET)

    def test_fresh_account_does_not_exist(self, client, w3):
        w3.eth.get_transaction_count.return_value = 0
        w3.eth.get_balance.return_value = 0
        assert not client.account_exists(WALLET)

    def test_rpc_failure_is_network_error(self, client, w3):
        w3.eth.get_transaction_count.side_effect = ConnectionError('down')
        with pytest.raises(ChainNetworkError):
            client.account_exists(WALLET)

    def test_invalid_address(self, client):
        with pytest.raises(InvalidWalletAddress):
            client.account_exists('not-an-address')

    def test_funded_with_tokens_and_gas(self, client, w3):
        token_functions(w3).balanceOf.return_value.call.return_value = 5 * 10 ** 18
        assert client.is_funded(10 ** 18)

    def test_not_funded_when_tokens_short(self, client, w3):
        token_functions(w3).balanceOf.return_value.call.return_value = 10
        assert not client.is_funded(10 ** 18)

    def test_not_funded_without_gas(self, client, w3):
        token_functions(w3).balanceOf.return_value.call.return_value = 5 * 10 ** 18
        w3.eth.get_balance.return_value = 0
        assert not client.is_funded(10 ** 18)

    def test_token_balance_in_whole_tokens(self, client, w3):
        token_functions(w3).balanceOf.return_value.call.return_value = 1250000000000000000
        assert client.get_token_balance(WALLET) == Decimal('1.25')


class TestTransfer:

    def test_transfer_returns_prefixed_hash(self, client, w3):
        tx_hash = client.transfer(WALLET, 350)

        assert tx_hash == '0x' + 'ab' * 32
        args, _ = token_functions(w3).transfer.call_args
        assert args[1] == 350
        tx_params = token_functions(w3).transfer.return_value.build_transaction.call_args[0][0]
        assert tx_params['nonce'] == 3
        assert tx_params['chainId'] == client.chain_id
        assert tx_params['gasPrice'] == 1200
        w3.eth.send_raw_transaction.assert_called_once()

    def test_unconfigured_transfer_is_refused(self, w3):
        client = RewardChainClient(settings={'REWARD_KEY': None}, w3=w3)
        with pytest.raises(ChainNotConfigured):
            client.transfer(WALLET, 350)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_invalid_recipient(self, client, w3):
        with pytest.raises(InvalidWalletAddress):
            client.transfer('0x1234', 350)
        w3.eth.send_raw_transaction.assert_not_called()

    def test_revert_is_rejection(self, client, w3):
        token_functions(w3).transfer.return_value.build_transaction.side_effect = ContractLogicError('execution reverted')
        with pytest.raises(TransferRejected):
            client.transfer(WALLET, 350)

    def test_connection_failure_is_network_error(self, client, w3):
        w3.eth.send_raw_transaction.side_effect = ConnectionError('reset')
        with pytest.raises(ChainNetworkError):
            client.transfer(WALLET, 350)


class TestConfirmation:

    def test_successful_receipt(self, client, w3):
        receipt = SimpleNamespace(status=1, gasUsed=52000, blockNumber=100)
        w3.eth.wait_for_transaction_receipt.return_value = receipt

        assert client.wait_for_confirmation('0xabc') is receipt
        w3.eth.wait_for_transaction_receipt.assert_called_once_with('0xabc', timeout=client.confirmation_timeout)

    def test_failed_receipt_is_rejection(self, client, w3):
        w3.eth.wait_for_transaction_receipt.return_value = SimpleNamespace(status=0, gasUsed=52000, blockNumber=100)
        with pytest.raises(TransferRejected):
            client.wait_for_confirmation('0xabc')

    def test_timeout(self, client, w3):
        w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted('timed out')
        with pytest.raises(ConfirmationTimeout):
            client.wait_for_confirmation('0xabc')
