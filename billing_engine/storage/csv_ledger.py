"""CSV-backed ledger repository.

A ledger directory holds one CSV file per record type. Files are read with
pandas, each row is validated into the matching pydantic model, and the
records are served from the in-memory repository. ``save`` writes the
mutable ledgers (time entries, expenses, milestones, invoices) back so that
invoice links survive between runs.

Expected files (all optional; a missing file is an empty ledger):
- projects.csv: id, client_id, name, status
- contracts.csv: id, project_id, contract_type, billing_cycle, hourly_rate,
  fixed_amount, retainer_amount, is_active, auto_invoice
- time_entries.csv: id, project_id, date, hours, rate, amount, billable,
  status, invoice_id, user_id, description
- expenses.csv: id, project_id, date, amount, category, billable,
  description, invoice_id
- milestones.csv: id, project_id, name, status, completed_date, invoice_id
- invoices.csv: Invoice fields, with line_items stored as a JSON array
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Type, TypeVar, Union

import pandas as pd
from pydantic import ValidationError

from billing_engine.exceptions import StorageError
from billing_engine.models import (
    BaseDataModel,
    BillingContract,
    Expense,
    Invoice,
    Project,
    ProjectMilestone,
    TimeEntry,
)
from billing_engine.storage.memory import InMemoryBillingRepository

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseDataModel)

LEDGER_FILES = {
    "projects": ("projects.csv", Project),
    "contracts": ("contracts.csv", BillingContract),
    "time_entries": ("time_entries.csv", TimeEntry),
    "expenses": ("expenses.csv", Expense),
    "milestones": ("milestones.csv", ProjectMilestone),
    "invoices": ("invoices.csv", Invoice),
}

# Ledgers the engine mutates; projects and contracts are owned elsewhere.
WRITABLE_LEDGERS = ("time_entries", "expenses", "milestones", "invoices")


class CsvLedgerRepository(InMemoryBillingRepository):
    """Repository loaded from, and saved to, a directory of CSV files.

    Attributes:
        ledger_dir: Directory containing the ledger CSV files

    Example:
        >>> repo = CsvLedgerRepository("./ledger")
        >>> repo.load()
        >>> projects = repo.find_active_projects()
        >>> repo.save()
    """

    def __init__(self, ledger_dir: Union[str, Path]):
        super().__init__()
        self.ledger_dir = Path(ledger_dir)

    @classmethod
    def open(cls, ledger_dir: Union[str, Path]) -> "CsvLedgerRepository":
        repo = cls(ledger_dir)
        repo.load()
        return repo

    def load(self) -> None:
        """Read every ledger file into memory.

        Raises:
            StorageError: If the directory is missing or a row fails validation
        """
        if not self.ledger_dir.is_dir():
            raise StorageError(f"Ledger directory not found: {self.ledger_dir}")

        adders = {
            "projects": self.add_project,
            "contracts": self.add_contract,
            "time_entries": self.add_time_entry,
            "expenses": self.add_expense,
            "milestones": self.add_milestone,
            "invoices": self.add_invoice,
        }
        for ledger, (filename, model) in LEDGER_FILES.items():
            records = self._read_ledger(self.ledger_dir / filename, model)
            for record in records:
                adders[ledger](record)
            logger.info(f"Loaded {len(records)} {ledger} from {filename}")

    def _read_ledger(self, path: Path, model: Type[ModelT]) -> List[ModelT]:
        if not path.exists():
            logger.debug(f"Ledger file {path} not found, treating as empty")
            return []

        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        if df.empty:
            return []

        unknown = set(df.columns) - set(model.model_fields)
        if unknown:
            logger.warning(f"Ignoring unknown columns in {path.name}: {sorted(unknown)}")

        records = []
        for index, row in df.iterrows():
            data = self._clean_row(row.to_dict(), model)
            try:
                records.append(model(**data))
            except ValidationError as e:
                # +2: header line and 1-based numbering
                raise StorageError(f"{path.name} line {index + 2}: {e}") from e
        return records

    @staticmethod
    def _clean_row(row: Dict[str, Any], model: Type[BaseDataModel]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key, value in row.items():
            if key not in model.model_fields:
                continue
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
            if key == "line_items" and isinstance(value, str):
                value = json.loads(value)
            data[key] = value
        return data

    def save(self) -> None:
        """Write the mutable ledgers back to the ledger directory."""
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        snapshot = self.snapshot()

        for ledger in WRITABLE_LEDGERS:
            filename, model = LEDGER_FILES[ledger]
            rows = [self._to_row(record) for record in snapshot[ledger]]
            df = pd.DataFrame(rows, columns=list(model.model_fields))
            df.to_csv(self.ledger_dir / filename, index=False)
            logger.info(f"Saved {len(rows)} {ledger} to {filename}")

    @staticmethod
    def _to_row(record: BaseDataModel) -> Dict[str, Any]:
        row = record.model_dump(mode="json")
        if "line_items" in row:
            row["line_items"] = json.dumps(row["line_items"])
        return row
