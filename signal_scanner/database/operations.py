"""
Database operations module for batch UPSERT and insert-or-ignore operations.
Uses the ON CONFLICT support of the active dialect (PostgreSQL, SQLite).
"""

import logging
from typing import List, Dict, Any, Type, Optional, Union
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, SQLModel

logger = logging.getLogger(__name__)


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class DatabaseOperations:
    """Database operations handler for efficient batch operations."""

    def __init__(self, session: Session):
        """Initialize with database session.

        Args:
            session: SQLModel Session instance
        """
        self.session = session

    def _insert(self, table):
        dialect_name = self.session.get_bind().dialect.name
        try:
            insert = _DIALECT_INSERTS[dialect_name]
        except KeyError:
            raise NotImplementedError(f"ON CONFLICT is not supported for dialect {dialect_name}")
        return insert(table)

    def upsert_records(
        self,
        records: List[Dict[str, Any]],
        model_class: Type[SQLModel],
        conflict_columns: Union[str, List[str]],
        update_columns: Optional[List[str]] = None,
        batch_size: int = 1000,
        commit: bool = True
    ) -> Dict[str, Any]:
        """Perform batch UPSERT operation.

        Args:
            records: List of dictionaries containing record data
            model_class: SQLModel class representing the target table
            conflict_columns: Column(s) to use for conflict detection
            update_columns: Specific columns to update on conflict (if None, updates all
                non-conflict columns present in the records)
            batch_size: Number of records to process in each batch
            commit: Commit the session after the last batch

        Returns:
            Dictionary with operation statistics
        """
        if not records:
            return {"status": "success", "records_processed": 0, "batches": 0}

        if isinstance(conflict_columns, str):
            conflict_columns = [conflict_columns]

        table = model_class.__table__
        table_name = table.name

        if update_columns is None:
            update_columns = [col for col in records[0].keys() if col not in conflict_columns]

        total_records = len(records)
        records_processed = 0
        batch_count = 0

        logger.info(f"Starting UPSERT operation for {total_records} records to {table_name}")

        try:
            for start_idx in range(0, total_records, batch_size):
                batch_records = records[start_idx:start_idx + batch_size]

                stmt = self._insert(table).values(batch_records)

                if update_columns:
                    update_dict = {col: stmt.excluded[col] for col in update_columns}
                    stmt = stmt.on_conflict_do_update(
                        index_elements=conflict_columns,
                        set_=update_dict
                    )
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)

                self.session.execute(stmt)
                batch_count += 1
                records_processed += len(batch_records)

                logger.debug(f"Processed batch {batch_count}: {len(batch_records)} records")

            if commit:
                self.session.commit()

            logger.info(f"UPSERT completed: {records_processed} records in {batch_count} batches")

            return {
                "status": "success",
                "records_processed": records_processed,
                "batches": batch_count,
                "table_name": table_name
            }

        except Exception as e:
            self.session.rollback()
            logger.error(f"UPSERT operation failed for {table_name}: {e}")
            raise

    def insert_ignore_duplicates(
        self,
        records: List[Dict[str, Any]],
        model_class: Type[SQLModel],
        conflict_columns: List[str],
        batch_size: int = 1000
    ) -> Dict[str, Any]:
        """Insert records, silently skipping rows that hit a unique conflict.

        Does not commit; the caller owns the transaction.

        Args:
            records: List of dictionaries containing record data
            model_class: SQLModel class representing the target table
            conflict_columns: Columns of the unique constraint to ignore
            batch_size: Number of records to process in each batch

        Returns:
            Dictionary with operation statistics
        """
        if not records:
            return {"status": "success", "records_inserted": 0, "batches": 0}

        table = model_class.__table__
        records_inserted = 0
        batch_count = 0

        logger.info(f"Starting insert of {len(records)} records to {table.name}")

        for start_idx in range(0, len(records), batch_size):
            batch_records = records[start_idx:start_idx + batch_size]

            stmt = self._insert(table).values(batch_records).on_conflict_do_nothing(
                index_elements=conflict_columns
            )
            result = self.session.execute(stmt)

            batch_count += 1
            # rowcount excludes ignored conflicts
            records_inserted += max(result.rowcount or 0, 0)

            logger.debug(f"Inserted batch {batch_count}: {len(batch_records)} records")

        logger.info(f"Insert completed: {records_inserted} records in {batch_count} batches")

        return {
            "status": "success",
            "records_inserted": records_inserted,
            "batches": batch_count,
            "table_name": table.name
        }
