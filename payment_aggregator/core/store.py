"""In-memory, per-processor transaction collections."""
from typing import Dict, List, Tuple

from .models import ProcessorId, Transaction


class TransactionStore:
    """
    Insertion-ordered transactions per processor.

    A transaction whose ``tx_id`` already exists for the same processor
    replaces the earlier entry in place, so status transitions update the
    record instead of duplicating it. State lives for the process lifetime.
    """

    def __init__(self) -> None:
        self._collections: Dict[ProcessorId, List[Transaction]] = {
            processor: [] for processor in ProcessorId
        }
        self._positions: Dict[ProcessorId, Dict[str, int]] = {
            processor: {} for processor in ProcessorId
        }

    def add(self, transaction: Transaction) -> bool:
        """
        Append or replace a transaction.

        Args:
            transaction: Normalized transaction

        Returns:
            bool: True if an existing entry was replaced
        """
        processor = transaction.processor_id
        collection = self._collections[processor]
        positions = self._positions[processor]

        index = positions.get(transaction.tx_id)
        if index is not None:
            collection[index] = transaction
            return True

        positions[transaction.tx_id] = len(collection)
        collection.append(transaction)
        return False

    def transactions(self, processor_id: ProcessorId) -> Tuple[Transaction, ...]:
        """Snapshot of a processor's collection in insertion order."""
        return tuple(self._collections[ProcessorId(processor_id)])

    def get(self, processor_id: ProcessorId, tx_id: str) -> Transaction | None:
        processor = ProcessorId(processor_id)
        index = self._positions[processor].get(tx_id)
        if index is None:
            return None
        return self._collections[processor][index]

    def count(self, processor_id: ProcessorId) -> int:
        return len(self._collections[ProcessorId(processor_id)])

    def __len__(self) -> int:
        return sum(len(collection) for collection in self._collections.values())

    def clear(self) -> None:
        """Drop every stored transaction."""
        for processor in ProcessorId:
            self._collections[processor].clear()
            self._positions[processor].clear()
