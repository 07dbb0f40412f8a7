"""
Lido Protocol Monitor Tests
Total pooled ether, deposit executor balance, ETH staked and events of notice

Run: python -m pytest backend/tests/test_protocol_monitor.py -v
"""

import pytest
from unittest.mock import AsyncMock

from infrastructure.errors import ProviderError

from agents import ProtocolMonitorBot
from agents.protocol_monitor import TOTAL_POOLED_ETHER_KEY
from infrastructure.config import ProtocolMonitorConfig
from models import BlockContext, FindingSeverity, FindingType

ETH = 10**18


@pytest.fixture
def bot(mock_provider, monitor_state):
    mock_provider.get_balance.return_value = 10 * ETH  # healthy executor by default
    return ProtocolMonitorBot(ProtocolMonitorConfig(), mock_provider, monitor_state)


def pooled_ether(*totals):
    return AsyncMock(side_effect=list(totals))


def block(number, timestamp=0):
    return BlockContext(block_number=number, timestamp=timestamp)


# =============================================================================
# TEST: Blocks
# =============================================================================

class TestProtocolMonitorBlocks:

    @pytest.mark.asyncio
    async def test_initialize_seeds_total(self, bot, mock_provider, monitor_state):
        mock_provider.call_contract = pooled_ether(100 * ETH)

        metadata = await bot.initialize(1)

        assert metadata == {"totalPooledEther": str(100 * ETH)}
        assert monitor_state.get_value(TOTAL_POOLED_ETHER_KEY) == 100 * ETH
        args = mock_provider.call_contract.await_args
        assert args.args[2] == "getTotalPooledEther"
        assert args.kwargs["block_number"] == 1

    @pytest.mark.asyncio
    async def test_total_pooled_ether_increase(self, bot, mock_provider, monitor_state):
        mock_provider.call_contract = pooled_ether(100 * ETH, 150 * ETH)
        await bot.initialize(1)

        findings = await bot.handle_block(block(2))

        assert len(findings) == 1
        finding = findings[0]
        assert finding.alert_id == "TOTAL-POOLED-ETH-INCREASED"
        assert finding.description == "Total pooled Ether increased from 100.00 ETH to 150.00 ETH"
        assert finding.metadata == {
            "prevTotalPooledEther": str(100 * ETH),
            "newTotalPooledEther": str(150 * ETH),
        }
        assert monitor_state.get_value(TOTAL_POOLED_ETHER_KEY) == 150 * ETH

    @pytest.mark.asyncio
    async def test_total_pooled_ether_unchanged_or_lower(self, bot, mock_provider, monitor_state):
        mock_provider.call_contract = pooled_ether(100 * ETH, 100 * ETH, 90 * ETH)
        await bot.initialize(1)

        assert await bot.handle_block(block(2)) == []
        assert await bot.handle_block(block(3)) == []
        assert monitor_state.get_value(TOTAL_POOLED_ETHER_KEY) == 100 * ETH

    @pytest.mark.asyncio
    async def test_first_block_without_initialize_only_seeds(self, bot, mock_provider, monitor_state):
        mock_provider.call_contract = pooled_ether(100 * ETH)

        assert await bot.handle_block(block(2)) == []
        assert monitor_state.get_value(TOTAL_POOLED_ETHER_KEY) == 100 * ETH

    @pytest.mark.asyncio
    async def test_low_executor_balance(self, bot, mock_provider):
        mock_provider.call_contract = pooled_ether(100 * ETH, 100 * ETH)
        mock_provider.get_balance.return_value = 123456789000000000  # 0.123456789 ETH
        await bot.initialize(1)

        findings = await bot.handle_block(block(2, timestamp=1000))

        assert len(findings) == 1
        finding = findings[0]
        assert finding.alert_id == "LOW-DEPOSIT-EXECUTOR-BALANCE"
        assert finding.description == "Balance of deposit executor is 0.1235. This is extremely low!"
        assert finding.severity == FindingSeverity.HIGH
        assert finding.type == FindingType.SUSPICIOUS
        assert finding.metadata == {"balance": "123456789000000000"}

    @pytest.mark.asyncio
    async def test_low_executor_balance_rate_limited(self, bot, mock_provider):
        mock_provider.call_contract = AsyncMock(return_value=100 * ETH)
        mock_provider.get_balance.return_value = ETH

        counts = []
        for number, ts in [(2, 0), (3, 3600), (4, 18000)]:
            findings = await bot.handle_block(block(number, ts))
            counts.append(len([f for f in findings if f.alert_id == "LOW-DEPOSIT-EXECUTOR-BALANCE"]))

        assert counts == [1, 0, 1]

    @pytest.mark.asyncio
    async def test_executor_at_minimum_is_healthy(self, bot, mock_provider):
        mock_provider.call_contract = AsyncMock(return_value=100 * ETH)
        mock_provider.get_balance.return_value = 2 * ETH

        assert await bot.handle_block(block(2)) == []

    @pytest.mark.asyncio
    async def test_failed_pooled_ether_read_keeps_executor_alert(self, bot, mock_provider, monitor_state):
        """Low executor balance must still be reported once the failing read recovers"""
        mock_provider.get_balance.return_value = ETH // 10
        mock_provider.call_contract = AsyncMock(side_effect=ProviderError("call_contract", "rpc down"))

        with pytest.raises(ProviderError):
            await bot.handle_block(block(2, timestamp=1000))

        assert monitor_state.snapshot()["last_reported"] == {}

        mock_provider.call_contract = AsyncMock(return_value=100 * ETH)
        findings = await bot.handle_block(block(3, timestamp=1012))

        assert [f.alert_id for f in findings] == ["LOW-DEPOSIT-EXECUTOR-BALANCE"]

    @pytest.mark.asyncio
    async def test_failed_executor_read_keeps_pooled_ether_increase(self, bot, mock_provider, monitor_state):
        mock_provider.call_contract = pooled_ether(100 * ETH, 200 * ETH, 200 * ETH)
        await bot.initialize(1)
        mock_provider.get_balance = AsyncMock(side_effect=ProviderError("get_balance", "rpc down", 2))

        with pytest.raises(ProviderError):
            await bot.handle_block(block(2))

        assert monitor_state.get_value(TOTAL_POOLED_ETHER_KEY) == 100 * ETH

        mock_provider.get_balance = AsyncMock(return_value=10 * ETH)
        findings = await bot.handle_block(block(3))

        assert [f.alert_id for f in findings] == ["TOTAL-POOLED-ETH-INCREASED"]
        assert findings[0].metadata["newTotalPooledEther"] == str(200 * ETH)


# =============================================================================
# TEST: Transactions
# =============================================================================

class TestProtocolMonitorTransactions:

    @pytest.mark.asyncio
    async def test_eth_staked(self, bot, make_tx, make_log, test_addresses):
        log = make_log(test_addresses["LIDO"], "Submitted", {
            "sender": test_addresses["alice"],
            "amount": 32 * ETH,
            "referral": test_addresses["bob"],
        })

        findings = await bot.handle_transaction(make_tx(logs=[log]))

        assert len(findings) == 1
        assert findings[0].alert_id == "ETH-STAKED"
        assert findings[0].description == f"32.00 ETH staked by {test_addresses['alice']}"
        assert findings[0].metadata == {"amount": str(32 * ETH), "sender": test_addresses["alice"]}

    @pytest.mark.asyncio
    async def test_stopped_is_critical(self, bot, make_tx, make_log, test_addresses):
        findings = await bot.handle_transaction(make_tx(logs=[make_log(test_addresses["LIDO"], "Stopped")]))

        assert [(f.alert_id, f.severity) for f in findings] == [("LIDO-DAO-STOPPED", FindingSeverity.CRITICAL)]
        assert findings[0].description == "Lido DAO contract was stopped"

    @pytest.mark.asyncio
    async def test_withdrawal_credentials_rendered_as_hex(self, bot, make_tx, make_log, test_addresses):
        creds = bytes.fromhex("01" + "00" * 11 + "b9d7934878b5fb9610b3fe8a5e441e8fad7e293f")
        log = make_log(test_addresses["LIDO"], "WithdrawalCredentialsSet", {"withdrawalCredentials": creds})

        findings = await bot.handle_transaction(make_tx(logs=[log]))

        assert findings[0].alert_id == "LIDO-DAO-WD-CREDS-SET"
        assert findings[0].description == (
            "Lido DAO withdrawal credentials was set to "
            "0x010000000000000000000000b9d7934878b5fb9610b3fe8a5e441e8fad7e293f"
        )

    @pytest.mark.asyncio
    async def test_el_rewards_in_eth(self, bot, make_tx, make_log, test_addresses):
        log = make_log(test_addresses["LIDO"], "ELRewardsReceived", {"amount": 1500000000000000000})

        findings = await bot.handle_transaction(make_tx(logs=[log]))

        assert findings[0].description == "Rewards amount: 1.50 ETH"
        assert findings[0].metadata == {"amount": "1500000000000000000"}

    @pytest.mark.asyncio
    async def test_events_elsewhere_ignored(self, bot, make_tx, make_log, test_addresses):
        logs = [
            make_log(test_addresses["USDC"], "Stopped"),
            make_log(test_addresses["USDC"], "Submitted", {"sender": test_addresses["alice"], "amount": 1, "referral": test_addresses["bob"]}),
        ]
        assert await bot.handle_transaction(make_tx(logs=logs)) == []

    @pytest.mark.asyncio
    async def test_staked_before_events_of_notice(self, bot, make_tx, make_log, test_addresses):
        logs = [
            make_log(test_addresses["LIDO"], "Resumed", log_index=0),
            make_log(test_addresses["LIDO"], "Submitted", {
                "sender": test_addresses["alice"], "amount": ETH, "referral": test_addresses["bob"],
            }, log_index=1),
        ]
        findings = await bot.handle_transaction(make_tx(logs=logs))

        assert [f.alert_id for f in findings] == ["ETH-STAKED", "LIDO-DAO-RESUMED"]

    def test_declares_signatures(self, bot):
        names = {s.name for s in bot.signatures}
        assert names == {"Submitted", "Stopped", "Resumed", "WithdrawalCredentialsSet", "ELRewardsReceived"}
