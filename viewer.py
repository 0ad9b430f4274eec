import numpy as np
from matplotlib import pyplot as plt

from state import State


class Viewer:
    """
    Matplotlib window around a State: keys, scroll wheel and clicks go to the state,
    and every handled event triggers a redraw.
    """

    def __init__(self, settings, renderer=None):
        self.settings = settings
        self.screen_size = (settings.x_resolution, settings.y_resolution)
        self.state = State(self.screen_size, settings, renderer)

        # matplotlib only shows what it actually 'sees', size the figure in pixels
        self.dpi = 100
        self.fig, self.ax = plt.subplots(
            figsize=(self.screen_size[0] / self.dpi, self.screen_size[1] / self.dpi), dpi=self.dpi, frameon=False
        )
        self.ax.set_position([0, 0, 1, 1])
        self.ax.axis("off")
        self.img = self.ax.imshow(np.zeros((self.screen_size[1], self.screen_size[0], 3), dtype=np.uint8),
                                  origin="upper", aspect="auto")

        # the default matplotlib key bindings clash with ours
        for param in ("keymap.save", "keymap.pan", "keymap.yscale", "keymap.xscale",
                      "keymap.back", "keymap.forward", "keymap.zoom", "keymap.home", "keymap.grid"):
            plt.rcParams[param] = []

        self.fig.canvas.mpl_connect("key_press_event", self.on_key)
        self.fig.canvas.mpl_connect("scroll_event", self.on_scroll)
        self.fig.canvas.mpl_connect("button_press_event", self.on_click)
        self.fig.canvas.mpl_connect("resize_event", self.on_resize)

    def _mouse_pos(self, event):
        # matplotlib measures from the bottom left, the framebuffer from the top left
        return int(event.x), int(self.screen_size[1] - event.y)

    def redraw(self):
        pixels = self.state.render(self.screen_size).reshape((self.screen_size[1], self.screen_size[0]))
        image = np.stack([(pixels >> 16) & 0xFF, (pixels >> 8) & 0xFF, pixels & 0xFF], axis=-1).astype(np.uint8)

        self.img.set_data(image)
        self.img.set_extent((-0.5, self.screen_size[0] - 0.5, self.screen_size[1] - 0.5, -0.5))
        self.fig.canvas.draw_idle()

    def on_key(self, event):
        if event.key is not None and self.state.handle_key(event.key):
            self.redraw()

    def on_scroll(self, event):
        if event.button == "up":
            changed = self.state.zoom_to(1.0, self._mouse_pos(event), self.screen_size)
        else:
            changed = self.state.zoom_to(-1.0, self._mouse_pos(event), self.screen_size)
        if changed:
            self.redraw()

    def on_click(self, event):
        if event.button == 1 and self.state.handle_click(self._mouse_pos(event), self.screen_size):
            self.redraw()

    def on_resize(self, event):
        if event.width > 0 and event.height > 0:
            self.screen_size = (int(event.width), int(event.height))
            self.state.resize(self.screen_size)
            self.redraw()

    def run(self):
        self.redraw()
        plt.show()
