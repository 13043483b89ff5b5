import math

from PyQt6.QtCore import QPointF, QRectF, Qt, QTimer
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QTransform
from PyQt6.QtWidgets import QWidget

from notegraph.schema import NodeKind


class GraphWidget(QWidget):
    def __init__(self, controller, parent=None):
        super().__init__(parent)
        self.controller = controller

        # Rendering settings
        self.node_radius = 22
        self.node_colors = {
            NodeKind.CONCEPT: QColor("#00bcd4"),
            NodeKind.NOTE: QColor("#ffb300"),
        }
        self.selected_color = QColor("#ffffff")
        self.node_text_color = QColor("#ffffff")
        self.bg_color = QColor("#121212")

        # Interaction
        self.dragging_node = None
        self.drag_moved = False
        self.panning = False
        self.last_mouse_pos = QPointF()

        # Transform animation; physics runs on the controller's own clock
        self.frame_timer = QTimer(self)
        self.frame_timer.timeout.connect(self.animation_loop)
        self.frame_timer.start(16)

        self.controller.ticked.connect(self.update)
        self.controller.graph_changed.connect(self.update)
        self.controller.selection_changed.connect(lambda _node: self.update())

        self.setMouseTracking(True)

    @property
    def transform(self):
        return self.controller.transform

    def animation_loop(self):
        if self.transform.animating:
            self.transform.advance()
            self.update()

    def view_size(self):
        return (self.width(), self.height())

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        painter.fillRect(self.rect(), self.bg_color)

        # screen = view_center + offset + (world - world_center) * scale
        cx, cy = self.controller.config.center
        transform = QTransform()
        transform.translate(self.width() / 2 + self.transform.offset_x, self.height() / 2 + self.transform.offset_y)
        transform.scale(self.transform.scale, self.transform.scale)
        transform.translate(-cx, -cy)
        painter.setTransform(transform)

        self.draw_edges(painter)
        self.draw_nodes(painter)

    def draw_edges(self, painter):
        for edge in self.controller.edges:
            n1 = self.controller.node(edge.source)
            n2 = self.controller.node(edge.target)
            if not n1 or not n2:
                continue

            relation = edge.relation
            color = QColor(relation.color)
            pen = QPen(color, 2)
            if relation.is_dashed:
                pen.setStyle(Qt.PenStyle.DashLine)
            painter.setPen(pen)
            painter.drawLine(QPointF(n1.x, n1.y), QPointF(n2.x, n2.y))

            if relation.has_arrow:
                self.draw_arrowhead(painter, n1, n2, color)

    def draw_arrowhead(self, painter, n1, n2, color):
        dx = n2.x - n1.x
        dy = n2.y - n1.y
        dist = math.sqrt(dx * dx + dy * dy)
        if dist <= self.node_radius:
            return

        dx /= dist
        dy /= dist

        # Point on the rim of the destination node
        end_x = n2.x - dx * self.node_radius
        end_y = n2.y - dy * self.node_radius
        arrow_size = 9

        path = QPainterPath()
        path.moveTo(end_x, end_y)
        path.lineTo(end_x - dx * arrow_size + dy * (arrow_size * 0.5), end_y - dy * arrow_size - dx * (arrow_size * 0.5))
        path.lineTo(end_x - dx * arrow_size - dy * (arrow_size * 0.5), end_y - dy * arrow_size + dx * (arrow_size * 0.5))
        path.closeSubpath()
        painter.fillPath(path, color)

    def draw_nodes(self, painter):
        painter.setFont(QFont("Segoe UI", 10))
        selected = self.controller.selected

        for node in self.controller.nodes:
            is_selected = selected is not None and selected.uid == node.uid
            radius = self.node_radius * (1.1 if is_selected else 1.0)

            painter.setBrush(QBrush(self.node_colors.get(node.kind, self.node_colors[NodeKind.CONCEPT])))
            if is_selected:
                painter.setPen(QPen(self.selected_color, 3))
            else:
                painter.setPen(Qt.PenStyle.NoPen)

            rect = QRectF(node.x - radius, node.y - radius, radius * 2, radius * 2)
            painter.drawEllipse(rect)

            painter.setPen(self.node_text_color)
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, node.label[:2])
            painter.drawText(QRectF(node.x - 60, node.y + radius + 2, 120, 20), Qt.AlignmentFlag.AlignCenter, node.label)

    def node_at(self, screen_pos):
        wx, wy = self.screen_to_world(screen_pos)
        for node in reversed(self.controller.nodes):
            dx = wx - node.x
            dy = wy - node.y
            if math.sqrt(dx * dx + dy * dy) <= self.node_radius:
                return node
        return None

    def mousePressEvent(self, event):
        mouse_pos = event.position()
        self.last_mouse_pos = mouse_pos

        if event.button() == Qt.MouseButton.LeftButton:
            node = self.node_at(mouse_pos)
            if node is not None:
                self.dragging_node = node
                self.drag_moved = False
                self.setCursor(Qt.CursorShape.PointingHandCursor)
                return

        if event.button() in (Qt.MouseButton.LeftButton, Qt.MouseButton.RightButton):
            self.panning = True
            self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event):
        mouse_pos = event.position()

        if self.panning:
            delta = mouse_pos - self.last_mouse_pos
            self.transform.drag(delta.x(), delta.y())
            self.last_mouse_pos = mouse_pos
            self.update()

        elif self.dragging_node:
            wx, wy = self.screen_to_world(mouse_pos)
            self.controller.move_node(self.dragging_node, wx, wy)
            self.drag_moved = True
            self.update()

    def mouseReleaseEvent(self, event):
        if self.dragging_node is not None:
            self.controller.end_drag(self.dragging_node, self.drag_moved)

        self.dragging_node = None
        self.panning = False
        self.setCursor(Qt.CursorShape.ArrowCursor)

    def mouseDoubleClickEvent(self, event):
        node = self.node_at(event.position())
        if node is not None:
            self.controller.focus(node)

    def wheelEvent(self, event):
        angle = event.angleDelta().y()
        self.transform.pinch(1.1 if angle > 0 else 0.9)
        self.update()

    def screen_to_world(self, screen_pos):
        return self.transform.screen_to_world(
            screen_pos.x(), screen_pos.y(), self.view_size(), self.controller.config.center
        )
