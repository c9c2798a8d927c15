from __future__ import annotations

import html
import re
from typing import Sequence

from PySide6.QtCore import QSize, Qt, Signal
from PySide6.QtGui import QPainter, QTextDocument
from PySide6.QtWidgets import (
    QAbstractItemView,
    QListWidget,
    QListWidgetItem,
    QStyle,
    QStyledItemDelegate,
)

from prompter.app.models import Prompt

PROMPT_ROLE = Qt.UserRole
DEFAULT_ICON_COLOR = "#6B7280"
FAVORITE_COLOR = "#F59E0B"


class HTMLDelegate(QStyledItemDelegate):
    """Custom delegate to render HTML in list items."""

    def paint(self, painter: QPainter, option, index):
        painter.save()
        doc = self._document(index.data(Qt.DisplayRole), option)
        if option.state & QStyle.StateFlag.State_Selected:
            painter.fillRect(option.rect, option.palette.highlight())
            doc.setDefaultStyleSheet("body { color: white; }")
            doc.setHtml(index.data(Qt.DisplayRole))
        painter.translate(option.rect.topLeft())
        doc.drawContents(painter)
        painter.restore()

    def sizeHint(self, option, index):
        doc = self._document(index.data(Qt.DisplayRole), option)
        size = doc.size()
        return QSize(int(size.width()), int(size.height()))

    @staticmethod
    def _document(text: str, option) -> QTextDocument:
        doc = QTextDocument()
        doc.setDefaultFont(option.font)
        doc.setDocumentMargin(4)
        doc.setHtml(text or "")
        doc.setTextWidth(option.rect.width() if option.rect.width() > 0 else 480)
        return doc


def highlight(text: str, query: str) -> str:
    """HTML-escape text and bold case-insensitive occurrences of query."""
    escaped = html.escape(text or "")
    term = (query or "").strip()
    if len(term) < 2:
        return escaped
    pattern = re.compile(f"({re.escape(html.escape(term))})", re.IGNORECASE)
    return pattern.sub(r"<b>\1</b>", escaped)


def row_html(prompt: Prompt, query: str = "") -> str:
    """Row markup: icon, name, favorite star, description, folder badge and the variables marker."""
    color = html.escape(prompt.color or DEFAULT_ICON_COLOR)
    icon = html.escape(prompt.icon or (prompt.name[:1].upper() if prompt.name else "?"))
    parts = [
        "<table width='100%' cellspacing='0' cellpadding='2'><tr>",
        f"<td width='28' align='center' style='background:{color}; color:white;'>{icon}</td>",
        f"<td><span style='font-size: 105%;'>{highlight(prompt.name, query)}</span>",
    ]
    if prompt.is_favorite:
        parts.append(f" <span style='color:{FAVORITE_COLOR};' title='Favorite'>★</span>")
    if prompt.description:
        parts.append(f"<br/><span style='color:gray;'>{highlight(prompt.description, query)}</span>")
    parts.append("</td><td align='right'>")
    if prompt.folder:
        parts.append(f"<span style='color:gray;'>{html.escape(prompt.folder)}</span>")
    if prompt.has_variables:
        parts.append(" <span title='Press Tab to fill variables'>{{}}</span>")
    parts.append("</td></tr></table>")
    return "".join(parts)


class ResultsList(QListWidget):
    """Navigable list of candidate prompts. Keyboard focus stays in the search field."""

    promptActivated = Signal(int)  # row
    rowHovered = Signal(int)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setItemDelegate(HTMLDelegate(self))
        self.setFocusPolicy(Qt.NoFocus)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setMouseTracking(True)
        self.viewport().setMouseTracking(True)
        self.setUniformItemSizes(False)
        self.itemEntered.connect(lambda item: self.rowHovered.emit(self.row(item)))
        self.itemClicked.connect(lambda item: self.promptActivated.emit(self.row(item)))

    def set_results(self, prompts: Sequence[Prompt], query: str = "") -> None:
        self.clear()
        for prompt in prompts:
            item = QListWidgetItem(row_html(prompt, query))
            item.setData(PROMPT_ROLE, prompt.id)
            if prompt.description:
                item.setToolTip(prompt.description)
            self.addItem(item)

    def set_selected_index(self, index: int) -> None:
        """Highlight a row; any index outside the list just clears the highlight."""
        if 0 <= index < self.count():
            self.setCurrentRow(index)
            self.scrollToItem(self.item(index), QAbstractItemView.EnsureVisible)
        else:
            self.clearSelection()
            self.setCurrentRow(-1)

    def selected_row(self) -> int:
        items = self.selectedItems()
        return self.row(items[0]) if items else -1
