"""
Tablez Control Panel App

Main Kivy application with:
- Live status view
- Configuration editor
- Driver connection management

Runs Kivy on the asyncio loop so driver calls and telemetry share it.
"""

import asyncio
import logging

from kivy.app import App
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.label import Label
from kivy.uix.togglebutton import ToggleButton
from kivy.clock import Clock

from .status_view import StatusView
from .config_view import ConfigView
from ..channels import EventChannels
from ..driver import DriverClient
from ..errors import DriverError
from ..settings import PanelSettings, load_settings
from ..sync import ConfigSynchronizer

LOG = logging.getLogger("tablez.gui")


class DriverStatusBar(BoxLayout):
    """Driver link, loaded tablet and unsaved-edit marker"""

    LINK_COLORS = {
        'connected': (0.4, 1, 0.5, 1),
        'absent': (1, 0.4, 0.4, 1),
        'closed': (0.6, 0.6, 0.6, 1),
    }

    def __init__(self, socket_path: str, **kwargs):
        super().__init__(orientation='horizontal', size_hint_y=None, height=40,
                         padding=10, spacing=10, **kwargs)
        self.socket_path = socket_path

        self.link_label = Label(size_hint_x=0.35, halign='left')
        self.tablet_label = Label(text='No config loaded', size_hint_x=0.45)
        self.dirty_label = Label(size_hint_x=0.2, halign='right', color=(1, 0.8, 0.3, 1))
        for label in (self.link_label, self.tablet_label, self.dirty_label):
            label.bind(size=label.setter('text_size'))
            self.add_widget(label)

        self.show_link('closed')

    def show_link(self, state: str):
        text = {
            'connected': f'Driver: {self.socket_path}',
            'absent': 'Driver not running',
            'closed': 'Driver disconnected',
        }[state]
        self.link_label.text = text
        self.link_label.color = self.LINK_COLORS[state]

    def show_sync(self, sync: ConfigSynchronizer):
        config = sync.loaded
        if config.xinput_name:
            self.tablet_label.text = (
                f"{config.xinput_name} ({config.vendor_id:04x}:{config.product_id:04x})"
            )
        elif sync.load_error:
            self.tablet_label.text = 'Config unavailable'
        self.dirty_label.text = 'Unsaved edits' if sync.is_dirty else ''


class MainLayout(BoxLayout):
    """Main application layout"""

    def __init__(self, settings: PanelSettings, **kwargs):
        super().__init__(**kwargs)
        self.orientation = 'vertical'
        self.padding = 10
        self.spacing = 10

        self.settings = settings
        self.channels = EventChannels()
        self.driver = DriverClient(
            socket_path=settings.socket_path,
            config_path=settings.config_path,
            channels=self.channels,
            persist=settings.persist_config,
        )
        self.sync = ConfigSynchronizer(self.driver, clear_delay=settings.status_clear_delay)
        self.sync.add_listener(self._on_sync_change)

        # Status bar
        self.status_bar = DriverStatusBar(settings.socket_path)

        # Tabs
        tab_bar = BoxLayout(orientation='horizontal', size_hint_y=None, height=44, spacing=5)
        self.status_tab = ToggleButton(text='Status', group='tabs', state='down',
                                       allow_no_selection=False)
        self.config_tab = ToggleButton(text='Configuration', group='tabs',
                                       allow_no_selection=False)
        self.status_tab.bind(on_press=lambda *a: self.show_tab('status'))
        self.config_tab.bind(on_press=lambda *a: self.show_tab('config'))
        tab_bar.add_widget(self.status_tab)
        tab_bar.add_widget(self.config_tab)

        self.status_view = StatusView(self.channels, scale=settings.canvas_scale())
        self.config_view = ConfigView(self.sync)

        self.content = BoxLayout()

        self.add_widget(self.status_bar)
        self.add_widget(tab_bar)
        self.add_widget(self.content)

        self.show_tab('status')

        Clock.schedule_once(lambda dt: self._start(), 0)

    def show_tab(self, name: str):
        """Swap the visible view; the status view unsubscribes when removed"""
        view = self.status_view if name == 'status' else self.config_view
        if view.parent is self.content:
            return
        self.content.clear_widgets()
        self.content.add_widget(view)

    def _start(self):
        asyncio.ensure_future(self._run_telemetry())
        asyncio.ensure_future(self.sync.load())

    async def _run_telemetry(self):
        try:
            await self.driver.connect()
        except DriverError as e:
            LOG.warning("%s", e)
            self.status_bar.show_link('absent')
            return

        self.status_bar.show_link('connected')
        await self.driver.start()
        self.status_bar.show_link('closed')

    def _on_sync_change(self, sync: ConfigSynchronizer):
        self.status_bar.show_sync(sync)
        self.status_view.set_scale(self.settings.canvas_scale(sync.loaded.pen))

    async def shutdown(self):
        """Release the driver connection"""
        self.show_tab('config')  # detaches the status view
        await self.driver.close()


class TablezPanelApp(App):
    """Main application class"""

    def __init__(self, settings: PanelSettings = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or load_settings()

    def build(self):
        self.title = 'Tablez Panel'
        return MainLayout(self.settings)


async def _run(app: TablezPanelApp):
    await app.async_run(async_lib='asyncio')
    if app.root is not None:
        await app.root.shutdown()


def run_app(settings: PanelSettings = None):
    asyncio.run(_run(TablezPanelApp(settings)))


def main():
    from ..cli import configure_logging

    settings = load_settings()
    configure_logging(settings.log_level)
    run_app(settings)


if __name__ == '__main__':
    main()
