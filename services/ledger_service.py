"""
Ledger Service - FarmTreasury contract access over web3.

    client = LedgerClient()
    nonce = client.get_nonce(wallet)
    signature = client.sign_action(wallet, 'plant', data, nonce)
    events = client.fetch_events(from_block, to_block)
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

import settings
from services.errors import LedgerError

logger = logging.getLogger(__name__)

FARM_TREASURY_ABI = [
    {
        'name': 'userNonces',
        'type': 'function',
        'stateMutability': 'view',
        'inputs': [{'name': 'user', 'type': 'address'}],
        'outputs': [{'name': '', 'type': 'uint256'}],
    },
    {
        'name': 'recordActionWithSignature',
        'type': 'function',
        'stateMutability': 'payable',
        'inputs': [
            {'name': 'actionType', 'type': 'string'},
            {'name': 'data', 'type': 'uint256'},
            {'name': 'nonce', 'type': 'uint256'},
            {'name': 'signature', 'type': 'bytes'},
        ],
        'outputs': [],
    },
    {
        'name': 'ActionRecorded',
        'type': 'event',
        'anonymous': False,
        'inputs': [
            {'name': 'user', 'type': 'address', 'indexed': True},
            {'name': 'actionType', 'type': 'string', 'indexed': False},
            {'name': 'data', 'type': 'uint256', 'indexed': False},
            {'name': 'timestamp', 'type': 'uint256', 'indexed': False},
        ],
    },
]

EIP712_TYPES = {
    'EIP712Domain': [
        {'name': 'name', 'type': 'string'},
        {'name': 'version', 'type': 'string'},
        {'name': 'chainId', 'type': 'uint256'},
        {'name': 'verifyingContract', 'type': 'address'},
    ],
    'RecordAction': [
        {'name': 'user', 'type': 'address'},
        {'name': 'actionType', 'type': 'string'},
        {'name': 'data', 'type': 'uint256'},
        {'name': 'nonce', 'type': 'uint256'},
    ],
}


@dataclass
class LedgerEvent:
    user: str
    action_type: str
    data: int
    timestamp: int
    block_number: int
    tx_hash: str
    log_index: int


class LedgerClient:
    def __init__(self, rpc_url=None, contract_address=None, private_key=None, chain_id=None, w3=None):
        self.rpc_url = rpc_url or settings.RPC_URL
        self.contract_address = contract_address or settings.FARM_TREASURY_ADDRESS
        self.private_key = private_key or settings.SIGNER_PRIVATE_KEY
        self.chain_id = chain_id or settings.CHAIN_ID
        self.w3 = w3 or Web3(Web3.HTTPProvider(self.rpc_url))
        self._contract = None

    def check_config(self):
        if not self.contract_address or self.contract_address == '0x...':
            raise LedgerError("FARM_TREASURY_ADDRESS is not configured")
        if not self.private_key:
            raise LedgerError("SIGNER_PRIVATE_KEY is not set")

    @property
    def contract(self):
        if self._contract is None:
            if not self.contract_address:
                raise LedgerError("FARM_TREASURY_ADDRESS is not configured")
            self._contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(self.contract_address),
                abi=FARM_TREASURY_ABI,
            )
        return self._contract

    def domain(self):
        return {
            'name': settings.EIP712_DOMAIN_NAME,
            'version': settings.EIP712_DOMAIN_VERSION,
            'chainId': self.chain_id,
            'verifyingContract': Web3.to_checksum_address(self.contract_address),
        }

    def get_nonce(self, wallet_address) -> int:
        """Current userNonces(wallet) on the treasury contract"""
        try:
            return int(self.contract.functions.userNonces(Web3.to_checksum_address(wallet_address)).call())
        except LedgerError:
            raise
        except Exception as e:
            logger.error(f"[LedgerClient] userNonces failed for {wallet_address}: {e}")
            raise LedgerError(f"Failed to get user nonce from contract: {e}")

    def sign_action(self, wallet_address, action_type, data, nonce) -> str:
        """
        EIP-712 RecordAction signature the contract checks in
        recordActionWithSignature.

        Returns:
            0x-prefixed hex signature
        """
        self.check_config()
        typed_data = {
            'types': EIP712_TYPES,
            'primaryType': 'RecordAction',
            'domain': self.domain(),
            'message': {
                'user': Web3.to_checksum_address(wallet_address),
                'actionType': action_type,
                'data': int(data),
                'nonce': int(nonce),
            },
        }
        try:
            signed = Account.sign_message(encode_typed_data(full_message=typed_data), private_key=self.private_key)
        except (ValueError, TypeError) as e:
            raise LedgerError(f"Failed to generate signature: {e}")
        return Web3.to_hex(signed.signature)

    def latest_block(self) -> int:
        try:
            return int(self.w3.eth.block_number)
        except Exception as e:
            raise LedgerError(f"Failed to read block number: {e}")

    def fetch_events(self, from_block, to_block: Optional[int] = None) -> List[LedgerEvent]:
        """ActionRecorded logs in [from_block, to_block], oldest first"""
        if to_block is None:
            to_block = self.latest_block()
        try:
            logs = self.contract.events.ActionRecorded.get_logs(from_block=from_block, to_block=to_block)
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"Failed to fetch ActionRecorded logs {from_block}-{to_block}: {e}")

        events = [
            LedgerEvent(
                user=log['args']['user'].lower(),
                action_type=log['args']['actionType'],
                data=int(log['args']['data']),
                timestamp=int(log['args']['timestamp']),
                block_number=int(log['blockNumber']),
                tx_hash=Web3.to_hex(log['transactionHash']),
                log_index=int(log['logIndex']),
            )
            for log in logs
        ]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events
