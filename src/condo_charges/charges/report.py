"""Report generation for charge statements."""

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from .amounts import format_brl
from .models import ChargeStatement, ChargeStatus, ChargeView

MONTH_NAMES = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]

STATUS_LABELS = {
    ChargeStatus.PENDING: "Pendente",
    ChargeStatus.PAID: "Pago",
    ChargeStatus.OVERDUE: "Atrasado",
}


def format_month_year(month: int, year: int) -> str:
    """Return e.g. 'Abril de 2024'."""
    return f"{MONTH_NAMES[month - 1]} de {year}"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y")


class ReportGenerator:
    """Generator for charge statements in various formats."""

    def __init__(self, statement: ChargeStatement):
        """Initialize the report generator.

        Args:
            statement: The statement to generate output from.
        """
        self.statement = statement

    def to_json(self, include_details: bool = True, indent: int = 2) -> str:
        """Generate JSON representation of the statement.

        Args:
            include_details: If True, include all charges. If False, only summary.
            indent: JSON indentation level.
        """
        if include_details:
            data = self.statement.to_full_dict()
        else:
            data = self.statement.to_summary_dict()

        def json_serializer(obj):
            if isinstance(obj, (date, datetime)):
                return obj.isoformat()
            if isinstance(obj, Decimal):
                return str(obj)
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

        return json.dumps(data, indent=indent, default=json_serializer, ensure_ascii=False)

    def to_csv(self) -> str:
        """Generate one CSV row per charge."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow([
            "id", "unit", "reference_month", "amount", "status",
            "due_date", "payment_date",
        ])
        for charge in self.statement.charges:
            writer.writerow([
                charge.id,
                charge.unit,
                charge.reference_month or "",
                str(charge.amount),
                charge.status.value if charge.status else "",
                charge.due_date.isoformat(),
                charge.payment_date.isoformat() if charge.payment_date else "",
            ])
        return output.getvalue()

    def to_text(self) -> str:
        """Generate a human-readable statement.

        Pending views list the due date of each month, paid views the
        payment date.
        """
        statement = self.statement
        paid_view = statement.view == ChargeView.PAID
        title = "COBRANÇAS PAGAS" if paid_view else "COBRANÇAS PENDENTES"

        lines = [
            "=" * 60,
            title,
            "=" * 60,
            f"Unidade: {statement.unit}",
            f"Ano: {statement.year}",
            f"Data de referência: {format_date(statement.as_of)}",
            f"Atrasadas: {statement.overdue_count}",
            "-" * 60,
        ]

        if not statement.charges:
            state = "pagas" if paid_view else "pendentes"
            lines.append("Nenhuma cobrança encontrada")
            lines.append(f"Não existem cobranças {state} registradas para a sua unidade.")
        for charge in statement.charges:
            when = charge.payment_date if paid_view else charge.due_date
            label = STATUS_LABELS.get(charge.status, "-")
            lines.append(
                f"{format_month_year(charge.month, charge.year):<20} "
                f"{format_brl(charge.amount):>14}  {format_date(when):<10}  {label}"
            )

        lines.append("=" * 60)
        return "\n".join(lines)
