"""
Status View

Displays live tablet telemetry:
- Pen position, pressure and touch state
- Last tablet button event
- Canvas with the pen dot and pressure ring
"""

from kivy.uix.widget import Widget
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.label import Label
from kivy.graphics import Color, Ellipse, Rectangle, Line
from kivy.properties import NumericProperty, BooleanProperty, ObjectProperty

from ..channels import POINTER
from ..keys import display_name, key_for_code
from ..telemetry import (
    CanvasScale, PointerSnapshot, TelemetryMonitor, pressure_radius, ring_radius
)

# Grid spacing in canvas units
GRID_STEP = 50


class PenCanvas(Widget):
    """Tablet surface with the current pen position"""

    pen_x = NumericProperty(0)      # raw device units
    pen_y = NumericProperty(0)
    pressure = NumericProperty(0)
    touch = BooleanProperty(False)
    scale = ObjectProperty(CanvasScale())

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.bind(
            pos=self._update_canvas,
            size=self._update_canvas,
            pen_x=self._update_canvas,
            pen_y=self._update_canvas,
            pressure=self._update_canvas,
            touch=self._update_canvas,
            scale=self._update_canvas
        )
        self._update_canvas()

    def _to_widget(self, vx: float, vy: float):
        """Canvas units to widget pixels (canvas origin is top-left)."""
        sx = self.width / self.scale.canvas_width
        sy = self.height / self.scale.canvas_height
        return self.x + vx * sx, self.top - vy * sy

    def _update_canvas(self, *args):
        self.canvas.clear()
        with self.canvas:
            # Background
            Color(0.97, 0.98, 0.99)
            Rectangle(pos=self.pos, size=self.size)

            # Grid
            Color(0.9, 0.91, 0.92)
            step_x = self.width * GRID_STEP / self.scale.canvas_width
            step_y = self.height * GRID_STEP / self.scale.canvas_height
            x = self.x + step_x
            while step_x > 0 and x < self.right:
                Line(points=[x, self.y, x, self.top], width=1)
                x += step_x
            y = self.top - step_y
            while step_y > 0 and y > self.y:
                Line(points=[self.x, y, self.right, y], width=1)
                y -= step_y

            # Border
            Color(0.82, 0.84, 0.86)
            Line(rectangle=(*self.pos, *self.size), width=1)

            snapshot = PointerSnapshot(int(self.pen_x), int(self.pen_y),
                                       int(self.pressure), self.touch)
            px, py = self._to_widget(*self.scale.to_visual(snapshot))

            # Pen dot
            radius = pressure_radius(snapshot.pressure)
            if snapshot.touch:
                Color(0.23, 0.51, 0.96, 0.8)
            else:
                Color(0.61, 0.64, 0.69, 0.8)
            Ellipse(pos=(px - radius, py - radius), size=(radius * 2, radius * 2))

            # Pressure ring
            if snapshot.touch:
                ring = ring_radius(snapshot.pressure)
                Color(0.23, 0.51, 0.96, 0.4)
                Line(circle=(px, py, ring), width=2)


class StatusCard(BoxLayout):
    """Title and value label pair"""

    def __init__(self, title: str, **kwargs):
        super().__init__(**kwargs)
        self.orientation = 'vertical'
        self.padding = 8

        self.title_label = Label(text=title, font_size='14sp', color=(0.6, 0.6, 0.6, 1))
        self.value_label = Label(text='-', font_size='22sp', bold=True)
        self.add_widget(self.title_label)
        self.add_widget(self.value_label)

    def set_value(self, text: str, highlight: bool = False):
        self.value_label.text = text
        self.value_label.color = (1, 0.4, 0.4, 1) if highlight else (1, 1, 1, 1)


class StatusView(BoxLayout):
    """Live telemetry panel.

    Listens to the driver channels only while attached to a parent, so
    switching tabs never leaves listeners behind.
    """

    def __init__(self, channels, scale: CanvasScale = None, **kwargs):
        super().__init__(**kwargs)
        self.orientation = 'vertical'
        self.spacing = 10
        self.padding = 5

        self.monitor = TelemetryMonitor(channels, on_update=self._on_update)

        cards = BoxLayout(orientation='horizontal', spacing=10, size_hint_y=None, height=80)
        self.position_card = StatusCard('Position')
        self.pressure_card = StatusCard('Pressure')
        self.button_card = StatusCard('Button')
        cards.add_widget(self.position_card)
        cards.add_widget(self.pressure_card)
        cards.add_widget(self.button_card)

        self.touch_label = Label(text='Touch inactive', size_hint_y=None, height=30)

        self.pen_canvas = PenCanvas(scale=scale or CanvasScale())
        self.coord_label = Label(text='X: 0 | Y: 0', size_hint_y=None, height=24,
                                 halign='right', font_size='12sp')
        self.coord_label.bind(size=self.coord_label.setter('text_size'))

        self.add_widget(cards)
        self.add_widget(self.touch_label)
        self.add_widget(self.pen_canvas)
        self.add_widget(self.coord_label)

        self._show_pointer(self.monitor.pointer)
        self._show_button(self.monitor.button)

    def set_scale(self, scale: CanvasScale):
        self.pen_canvas.scale = scale

    def on_parent(self, widget, parent):
        if parent is None:
            self.monitor.unmount()
        else:
            self.monitor.mount()

    def _on_update(self, kind, snapshot):
        if kind == POINTER:
            self._show_pointer(snapshot)
        else:
            self._show_button(snapshot)

    def _show_pointer(self, snapshot):
        self.position_card.set_value(f'{snapshot.x}, {snapshot.y}')
        self.pressure_card.set_value(str(snapshot.pressure))
        self.touch_label.text = 'Touch active' if snapshot.touch else 'Touch inactive'
        self.coord_label.text = f'X: {snapshot.x} | Y: {snapshot.y}'

        self.pen_canvas.pen_x = snapshot.x
        self.pen_canvas.pen_y = snapshot.y
        self.pen_canvas.pressure = snapshot.pressure
        self.pen_canvas.touch = snapshot.touch

    def _show_button(self, snapshot):
        if snapshot.pressed:
            name = key_for_code(snapshot.key)
            key = display_name(name) if name else str(snapshot.key)
            self.button_card.title_label.text = 'Button pressed'
            self.button_card.set_value(f'Button {snapshot.index + 1} ({key})', highlight=True)
        else:
            self.button_card.title_label.text = 'Button free'
            self.button_card.set_value('None')
