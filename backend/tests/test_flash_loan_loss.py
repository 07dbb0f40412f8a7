"""
Flash Loan with Losses Bot Tests

Run: python -m pytest backend/tests/test_flash_loan_loss.py -v
"""

import json

import pytest
from unittest.mock import AsyncMock

from agents import FlashLoanLossBot
from infrastructure.config import FlashLoanConfig
from infrastructure.errors import ProviderError
from models import FindingSeverity, FindingType

THRESHOLD = 200000000000000000000  # 200 eth


@pytest.fixture
def bot(mock_provider):
    return FlashLoanLossBot(FlashLoanConfig(), mock_provider)


@pytest.fixture
def flash_loan(make_log, test_addresses):
    return make_log(test_addresses["AAVE_V2"], "FlashLoan", {
        "target": test_addresses["alice"],
        "initiator": test_addresses["alice"],
        "asset": test_addresses["bob"],
        "amount": 10**24,
        "premium": 9 * 10**20,
        "referralCode": 0,
    })


def balances(by_block):
    """call_contract double answering vault.balance() per block"""
    async def _call(address, abi, function_name, args=(), block_number=None):
        return by_block[block_number]
    return AsyncMock(side_effect=_call)


class TestFlashLoanLossBot:

    @pytest.mark.asyncio
    async def test_loss_at_threshold_reported(self, bot, mock_provider, make_tx, flash_loan, test_addresses):
        """balance 200 eth + 1 wei at block 99, 1 wei at block 100"""
        mock_provider.call_contract = balances({100: 1, 99: THRESHOLD + 1})
        tx = make_tx(logs=[flash_loan], addresses=[test_addresses["YEARN_DAI"]], block_number=100)

        findings = await bot.handle_transaction(tx)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.alert_id == "FORTA-5"
        assert finding.protocol == "aave"
        assert finding.severity == FindingSeverity.HIGH
        assert finding.type == FindingType.SUSPICIOUS
        assert finding.metadata["protocolAddress"] == test_addresses["YEARN_DAI"]
        assert finding.metadata["balanceDiff"] == "-200000000000000000000"
        assert finding.description == (
            f"Flash Loan with loss of -200000000000000000000 detected for {test_addresses['YEARN_DAI']}"
        )

        loans = json.loads(finding.metadata["loans"])
        assert len(loans) == 1
        assert loans[0]["event"] == "FlashLoan"
        assert loans[0]["args"]["amount"] == str(10**24)

    @pytest.mark.asyncio
    async def test_reads_target_balance_at_both_blocks(self, bot, mock_provider, make_tx, flash_loan, test_addresses):
        mock_provider.call_contract = balances({100: 0, 99: THRESHOLD})
        tx = make_tx(logs=[flash_loan], addresses=[test_addresses["YEARN_DAI"]], block_number=100)

        await bot.handle_transaction(tx)

        blocks = sorted(c.kwargs["block_number"] for c in mock_provider.call_contract.await_args_list)
        assert blocks == [99, 100]
        for call in mock_provider.call_contract.await_args_list:
            assert call.args[0] == test_addresses["YEARN_DAI"]
            assert call.args[2] == "balance"

    @pytest.mark.asyncio
    async def test_loss_below_threshold_ignored(self, bot, mock_provider, make_tx, flash_loan, test_addresses):
        mock_provider.call_contract = balances({100: 2, 99: THRESHOLD + 1})
        tx = make_tx(logs=[flash_loan], addresses=[test_addresses["YEARN_DAI"]], block_number=100)

        assert await bot.handle_transaction(tx) == []

    @pytest.mark.asyncio
    async def test_balance_increase_ignored(self, bot, mock_provider, make_tx, flash_loan, test_addresses):
        mock_provider.call_contract = balances({100: THRESHOLD * 3, 99: 0})
        tx = make_tx(logs=[flash_loan], addresses=[test_addresses["YEARN_DAI"]], block_number=100)

        assert await bot.handle_transaction(tx) == []

    @pytest.mark.asyncio
    async def test_target_not_involved(self, bot, mock_provider, make_tx, flash_loan):
        tx = make_tx(logs=[flash_loan])

        assert await bot.handle_transaction(tx) == []
        mock_provider.call_contract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lending_protocol_not_involved(self, bot, mock_provider, make_tx, test_addresses):
        tx = make_tx(addresses=[test_addresses["YEARN_DAI"], test_addresses["alice"]])

        assert await bot.handle_transaction(tx) == []
        mock_provider.call_contract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_flash_loan_event(self, bot, mock_provider, make_tx, make_log, test_addresses):
        """Both involved but the lending protocol emitted something else"""
        other = make_log(test_addresses["AAVE_V2"], "Deposit", {"amount": 1})
        tx = make_tx(logs=[other], addresses=[test_addresses["YEARN_DAI"]])

        assert await bot.handle_transaction(tx) == []
        mock_provider.call_contract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self, bot, mock_provider, make_tx, flash_loan, test_addresses):
        mock_provider.call_contract = AsyncMock(side_effect=ProviderError("call_contract", "timeout"))
        tx = make_tx(logs=[flash_loan], addresses=[test_addresses["YEARN_DAI"]])

        with pytest.raises(ProviderError):
            await bot.handle_transaction(tx)
