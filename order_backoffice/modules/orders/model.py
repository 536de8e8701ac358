from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ...utils.helpers import fmt_money, fmt_percent
from .calculations import order_totals
from .stages import label as stage_label, style_tokens

# Custom roles
LossRole = Qt.UserRole + 1
OrderIdRole = Qt.UserRole + 2

LOSS_COLOR = QColor("#B91C1C")


class OrdersTableModel(QAbstractTableModel):
    """Read-only table over loaded orders; totals are derived per row, never stored."""

    HEADERS = ["Naslov", "Kupac", "Telefon", "Faza", "Kol.", "Prodajno", "Nabavno",
               "Transport", "Profit", "Moj %", "Povrat"]

    def __init__(self, rows: list | None = None, parent=None):
        super().__init__(parent)
        self._rows = list(rows or [])
        self._totals = [order_totals(o) for o in self._rows]

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        o = self._rows[index.row()]
        t = self._totals[index.row()]
        c = index.column()
        if role in (Qt.DisplayRole, Qt.EditRole):
            mapping = [
                o.title,
                o.customer_name,
                o.phone,
                stage_label(o.stage),
                t.total_qty,
                fmt_money(t.total_sale),
                fmt_money(t.total_purchase),
                fmt_money(t.transport),
                fmt_money(t.profit),
                fmt_percent(t.my_profit_percent),
                fmt_money(t.return_amount),
            ]
            return mapping[c] if c < len(mapping) else None
        if role == Qt.ForegroundRole:
            if t.is_loss and self.HEADERS[c] == "Profit":
                return LOSS_COLOR
            if self.HEADERS[c] == "Faza":
                return QColor(style_tokens(o.stage)["fg"])
            return None
        if role == Qt.BackgroundRole and self.HEADERS[c] == "Faza":
            return QColor(style_tokens(o.stage)["bg"])
        if role == Qt.TextAlignmentRole and c >= 4:
            return Qt.AlignRight | Qt.AlignVCenter
        if role == LossRole:
            return t.is_loss
        if role == OrderIdRole:
            return o.id
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[section] if section < len(self.HEADERS) else None
        return super().headerData(section, orientation, role)

    def at(self, row: int):
        return self._rows[row]

    def replace(self, rows: list):
        self.beginResetModel()
        self._rows = list(rows)
        self._totals = [order_totals(o) for o in self._rows]
        self.endResetModel()

    def bind(self, slot) -> None:
        """Follow a StateSlot holding the order list."""
        slot.changed.connect(self.replace)
        self.replace(slot.value or [])
