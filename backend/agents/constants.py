"""
Shared constants: event signatures, ABIs and the Lido events-of-notice table
"""

from typing import Tuple

from models import EventDescriptor, FindingSeverity
from services.thresholds import format_amount, normalize_amount

# 1 ETH = 10^18 wei
ETH_DECIMALS = 18

# ============================================
# EVENTS
# ============================================

ERC20_TRANSFER_EVENT = "event Transfer(address indexed from, address indexed to, uint256 value)"

FLASH_LOAN_EVENT = (
    "event FlashLoan(address indexed target, address indexed initiator, address indexed asset, "
    "uint256 amount, uint256 premium, uint16 referralCode)"
)

SUBMITTED_EVENT = "event Submitted(address indexed sender, uint256 amount, address referral)"

# ============================================
# ABIS
# ============================================

LIDO_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "getTotalPooledEther",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
]

# Yearn v1 vault: total underlying held by the vault
VAULT_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "balance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
]


def eth_amount(wei) -> str:
    """wei -> ETH with two places, e.g. 1500000000000000000 -> "1.50" """
    return format_amount(normalize_amount(wei, ETH_DECIMALS), 2)


# ============================================
# LIDO EVENTS OF NOTICE
# ============================================

def lido_events_of_notice(lido_address: str) -> Tuple[EventDescriptor, ...]:
    return (
        EventDescriptor(
            contract_address=lido_address,
            event_signature="event Stopped()",
            alert_id="LIDO-DAO-STOPPED",
            name="Lido DAO: Stopped",
            description="Lido DAO contract was stopped",
            severity=FindingSeverity.CRITICAL,
        ),
        EventDescriptor(
            contract_address=lido_address,
            event_signature="event Resumed()",
            alert_id="LIDO-DAO-RESUMED",
            name="Lido DAO: Resumed",
            description="Lido DAO contract was resumed",
            severity=FindingSeverity.HIGH,
        ),
        EventDescriptor(
            contract_address=lido_address,
            event_signature="event WithdrawalCredentialsSet(bytes32 withdrawalCredentials)",
            alert_id="LIDO-DAO-WD-CREDS-SET",
            name="Lido DAO: Withdrawal Credentials Set",
            description="Lido DAO withdrawal credentials was set to {withdrawalCredentials}",
            severity=FindingSeverity.CRITICAL,
        ),
        EventDescriptor(
            contract_address=lido_address,
            event_signature="event ELRewardsReceived(uint256 amount)",
            alert_id="LIDO-DAO-EL-REWARDS-RECEIVED",
            name="Lido DAO: EL rewards received",
            description="Rewards amount: {amount} ETH",
            severity=FindingSeverity.INFO,
            formatters={"amount": eth_amount},
        ),
    )
