"""
Configuration View

Axis flags and button key combinations, saved to the driver on request.
All state lives in the ConfigSynchronizer; the widgets mirror it.
"""

import asyncio

from kivy.uix.boxlayout import BoxLayout
from kivy.uix.gridlayout import GridLayout
from kivy.uix.label import Label
from kivy.uix.button import Button
from kivy.uix.checkbox import CheckBox
from kivy.uix.spinner import Spinner

from ..combo import BUTTON_SLOTS
from ..keys import KEYS, display_name
from ..sync import ConfigSynchronizer, SaveStatus, SyncState

FLAG_LABELS = [
    ('swap_axis', 'Swap X/Y axes'),
    ('swap_direction_x', 'Invert X axis'),
    ('swap_direction_y', 'Invert Y axis'),
]

KEY_BY_DISPLAY = {display_name(name): name for name in KEYS}


class ConfigView(BoxLayout):
    """Flag checkboxes, button combination spinners and Save button"""

    def __init__(self, sync: ConfigSynchronizer, **kwargs):
        super().__init__(**kwargs)
        self.orientation = 'vertical'
        self.padding = 10
        self.spacing = 5

        self.sync = sync
        self._refreshing = False

        # Flags
        self.checkboxes = {}
        for name, text in FLAG_LABELS:
            row = BoxLayout(orientation='horizontal', size_hint_y=None, height=36)
            box = CheckBox(size_hint_x=0.1)
            box.bind(active=lambda inst, value, n=name: self._on_flag(n, value))
            lbl = Label(text=text, size_hint_x=0.9, halign='left')
            lbl.bind(size=lbl.setter('text_size'))
            row.add_widget(box)
            row.add_widget(lbl)
            self.add_widget(row)
            self.checkboxes[name] = box

        # Button combinations
        grid = GridLayout(cols=3, spacing=5, size_hint_y=None)
        grid.bind(minimum_height=grid.setter('height'))
        values = [display_name(name) for name in KEYS]
        self.spinners = []
        for index in range(BUTTON_SLOTS):
            grid.add_widget(Label(text=f'Button {index + 1}', size_hint_y=None, height=36))
            slots = []
            for slot in (0, 1):
                spinner = Spinner(text=values[0], values=values, size_hint_y=None, height=36)
                spinner.bind(text=lambda inst, text, i=index, s=slot: self._on_key(i, s, text))
                grid.add_widget(spinner)
                slots.append(spinner)
            self.spinners.append(slots)
        self.add_widget(grid)

        # Save row
        btn_row = BoxLayout(orientation='horizontal', size_hint_y=None, height=50, spacing=10)
        btn_row.padding = [0, 10, 0, 0]

        self.save_btn = Button(text='Save', size_hint_x=0.3)
        self.save_btn.bind(on_press=self._on_save)

        self.status_label = Label(text='', size_hint_x=0.7, halign='left')
        self.status_label.bind(size=self.status_label.setter('text_size'))

        btn_row.add_widget(self.save_btn)
        btn_row.add_widget(self.status_label)
        self.add_widget(btn_row)

        sync.add_listener(self.refresh)
        self.refresh(sync)

    def refresh(self, sync: ConfigSynchronizer):
        """Copy synchronizer state into the widgets"""
        self._refreshing = True
        try:
            settings = sync.record.settings
            for name, box in self.checkboxes.items():
                box.active = getattr(settings, name)

            for index, pair in enumerate(sync.pairs):
                for slot, spinner in enumerate(self.spinners[index]):
                    spinner.text = display_name(pair[slot])
        finally:
            self._refreshing = False

        self.save_btn.disabled = sync.state != SyncState.IDLE
        self.status_label.text = sync.status_text()
        if sync.save_status == SaveStatus.FAILED or sync.load_error:
            self.status_label.color = (1, 0.4, 0.4, 1)
        elif sync.save_status == SaveStatus.SAVED:
            self.status_label.color = (0.4, 1, 0.5, 1)
        else:
            self.status_label.color = (1, 1, 1, 1)

    def _on_flag(self, name: str, value: bool):
        if not self._refreshing:
            self.sync.set_flag(name, bool(value))

    def _on_key(self, index: int, slot: int, text: str):
        if not self._refreshing:
            self.sync.set_button_key(index, slot, KEY_BY_DISPLAY[text])

    def _on_save(self, instance):
        self.save_btn.disabled = True
        asyncio.ensure_future(self.sync.save())
