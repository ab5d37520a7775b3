"""
Fee Bundler

Injects a native SOL fee transfer into an already compiled transaction (the
swap provider's output) so that one signature from the user authorizes both
the swap and the fee.

The rewrite works directly on the compiled message: instructions reference
accounts by index into the static key table, so every inserted key shifts the
indices after it. Key regions implied by the message header are preserved:

    [writable signers | read-only signers | writable non-signers | read-only non-signers]

The signer regions never change. A new fee wallet is inserted at the end of the
writable non-signer region; a new system program key is appended to the
read-only non-signer region. Addresses loaded from lookup tables (v0 messages)
are indexed after the static keys and are shifted along with them.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from solders.hash import Hash
from solders.instruction import CompiledInstruction
from solders.message import Message, MessageHeader, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from .builders import decode_address
from .codec import AnyTransaction, decode_transaction, encode_transaction
from .constants import SYSTEM_PROGRAM
from ...engine.exceptions import InvalidAmountError, SerializationError

logger = logging.getLogger(__name__)

# Compiled account indices are encoded as u8
_MAX_ACCOUNT_INDEX = 255


@dataclass
class CompiledMessageTable:
    """Mutable view over a compiled message's key table and instructions."""
    account_keys: List[Pubkey]
    num_required_signatures: int
    num_readonly_signed: int
    num_readonly_unsigned: int
    recent_blockhash: Hash
    program_ids: List[int] = field(default_factory=list)
    accounts: List[List[int]] = field(default_factory=list)
    datas: List[bytes] = field(default_factory=list)
    lookup_count: int = 0
    address_table_lookups: Optional[list] = None

    @classmethod
    def from_message(cls, message: Union[Message, MessageV0]) -> "CompiledMessageTable":
        header = message.header
        lookups = getattr(message, "address_table_lookups", None)
        table = cls(
            account_keys=list(message.account_keys),
            num_required_signatures=header.num_required_signatures,
            num_readonly_signed=header.num_readonly_signed_accounts,
            num_readonly_unsigned=header.num_readonly_unsigned_accounts,
            recent_blockhash=message.recent_blockhash,
            address_table_lookups=list(lookups) if lookups is not None else None,
        )
        if lookups:
            table.lookup_count = sum(
                len(bytes(lookup.writable_indexes)) + len(bytes(lookup.readonly_indexes))
                for lookup in lookups
            )
        for ix in message.instructions:
            table.program_ids.append(ix.program_id_index)
            table.accounts.append(list(bytes(ix.accounts)))
            table.datas.append(bytes(ix.data))
        table.validate()
        return table

    @property
    def is_versioned(self) -> bool:
        return self.address_table_lookups is not None

    def validate(self) -> None:
        """Check header bounds and that every compiled index resolves."""
        n = len(self.account_keys)
        if self.num_required_signatures < 1 or self.num_required_signatures > n:
            raise SerializationError("Message header declares no valid fee payer")
        if self.num_readonly_signed >= self.num_required_signatures:
            raise SerializationError("Message header has no writable signer")
        if self.num_readonly_unsigned > n - self.num_required_signatures:
            raise SerializationError("Message header read-only region exceeds key table")

        total = n + self.lookup_count
        for program_id, accounts in zip(self.program_ids, self.accounts):
            if program_id >= total or any(index >= total for index in accounts):
                raise SerializationError("Compiled instruction references an account outside the key table")

    def index_of(self, key: Pubkey) -> Optional[int]:
        try:
            return self.account_keys.index(key)
        except ValueError:
            return None

    def is_signer(self, index: int) -> bool:
        return index < self.num_required_signatures

    def is_writable(self, index: int) -> bool:
        n = len(self.account_keys)
        if index < self.num_required_signatures:
            return index < self.num_required_signatures - self.num_readonly_signed
        return index < n - self.num_readonly_unsigned

    def insert_key(self, position: int, key: Pubkey) -> int:
        """Insert `key` at `position`, shifting every compiled index at or past it."""
        self.account_keys.insert(position, key)
        self.program_ids = [i + 1 if i >= position else i for i in self.program_ids]
        self.accounts = [[i + 1 if i >= position else i for i in accounts] for accounts in self.accounts]
        return position

    def add_writable_unsigned(self, key: Pubkey) -> int:
        index = self.index_of(key)
        if index is not None:
            if not self.is_writable(index):
                raise SerializationError(f"Account {key} is read-only in this message")
            return index
        return self.insert_key(len(self.account_keys) - self.num_readonly_unsigned, key)

    def add_readonly_unsigned(self, key: Pubkey) -> int:
        index = self.index_of(key)
        if index is not None:
            return index
        position = self.insert_key(len(self.account_keys), key)
        self.num_readonly_unsigned += 1
        return position

    def append_instruction(self, program_id: int, accounts: List[int], data: bytes) -> None:
        if program_id > _MAX_ACCOUNT_INDEX or any(i > _MAX_ACCOUNT_INDEX for i in accounts):
            raise SerializationError("Key table too large for compiled account indices")
        self.program_ids.append(program_id)
        self.accounts.append(list(accounts))
        self.datas.append(data)

    def compile(self) -> AnyTransaction:
        """Rebuild the transaction with placeholder signatures for every signer."""
        instructions = [
            CompiledInstruction(program_id, data, bytes(accounts))
            for program_id, accounts, data in zip(self.program_ids, self.accounts, self.datas)
        ]
        signatures = [Signature.default()] * self.num_required_signatures

        if self.is_versioned:
            header = MessageHeader(
                self.num_required_signatures,
                self.num_readonly_signed,
                self.num_readonly_unsigned,
            )
            message = MessageV0(
                header,
                self.account_keys,
                self.recent_blockhash,
                instructions,
                self.address_table_lookups,
            )
            return VersionedTransaction.populate(message, signatures)

        message = Message.new_with_compiled_instructions(
            self.num_required_signatures,
            self.num_readonly_signed,
            self.num_readonly_unsigned,
            self.account_keys,
            self.recent_blockhash,
            instructions,
        )
        return Transaction.populate(message, signatures)


def append_fee_instruction(tx: AnyTransaction, payer: Pubkey, fee_wallet: Pubkey, fee_amount: int) -> AnyTransaction:
    """
    Return a copy of `tx` with a `fee_amount` lamport transfer payer -> fee_wallet
    appended as its last instruction.

    Raises:
        SerializationError: If the payer does not already sign the message as a
            writable account, if the fee wallet is present but read-only, or if
            the message structure is inconsistent.
    """
    table = CompiledMessageTable.from_message(tx.message)

    payer_index = table.index_of(payer)
    if payer_index is None or not table.is_signer(payer_index) or not table.is_writable(payer_index):
        raise SerializationError(f"Fee payer {payer} is not a writable signer of the transaction")

    fee_index = table.add_writable_unsigned(fee_wallet)
    program_index = table.add_readonly_unsigned(SYSTEM_PROGRAM)
    # Inserted keys land after the signer region, so the payer index never moves
    payer_index = table.index_of(payer)

    fee_ix = transfer(TransferParams(from_pubkey=payer, to_pubkey=fee_wallet, lamports=fee_amount))
    table.append_instruction(program_index, [payer_index, fee_index], bytes(fee_ix.data))
    return table.compile()


def append_fee(tx_blob: str, payer: str, fee_wallet: Optional[str], fee_amount: int) -> str:
    """
    Append a fee transfer to a base-64 transaction blob.

    Args:
        tx_blob: Base-64 serialized transaction (legacy or v0).
        payer: Address paying the fee; must already sign the transaction.
        fee_wallet: Address receiving the fee. Empty disables the fee.
        fee_amount: Fee in lamports. Zero disables the fee.

    Returns:
        The rewritten base-64 blob, or `tx_blob` itself when no fee applies.

    Raises:
        InvalidAddressError: If `payer` or `fee_wallet` does not decode.
        SerializationError: If the blob cannot be decoded or safely rewritten.

    Example:
        try:
            tx_blob = append_fee(swap_blob, user, fee_wallet, 10_000)
        except BuildError:
            tx_blob = swap_blob  # never lose the swap
    """
    if not fee_amount or not fee_wallet:
        return tx_blob
    if not isinstance(fee_amount, int) or fee_amount < 0:
        raise InvalidAmountError(f"Fee amount must be a non-negative int, got {fee_amount!r}")

    tx = decode_transaction(tx_blob)
    payer_pubkey = decode_address(payer, "payer")
    fee_pubkey = decode_address(fee_wallet, "fee_wallet")

    bundled = append_fee_instruction(tx, payer_pubkey, fee_pubkey, fee_amount)
    logger.debug("Appended %d lamport fee to %s", fee_amount, fee_pubkey)
    return encode_transaction(bundled)
