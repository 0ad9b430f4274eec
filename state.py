import math

from camera import Axis, Camera, Direction
from fractals import MAX_ITERATIONS_LIMIT, ColorScheme, Fractal, FractalType, RenderRequest
from render import Renderer
from settings import Settings
from text import Label


CHANGE_MAX_ITERATIONS_MULT = 1.5
CHANGE_MULTIBROT_EXPONENT_STEP = 0.05
CROSSHAIR_SIZE = 5


class State:
    """
    Everything an interactive session can change: camera, selections, iteration bound and
    overlay toggles. Input handlers return True when the frame has to be redrawn.
    """

    def __init__(self, screen_size, settings=None, renderer=None):
        self.settings = settings or Settings()
        self.renderer = renderer or Renderer(self.settings)

        self.camera = Camera(screen_size)
        self.fractal = Fractal(FractalType.from_label(self.settings.fractal), self.settings.multibrot_exponent)
        self.color_scheme = ColorScheme.from_label(self.settings.coloring)
        self.max_iterations = self.settings.max_iterations
        self.show_crosshair = self.settings.show_crosshair
        self.show_ui = self.settings.show_ui

        self._key_actions = {
            "w": lambda: self.camera.pan(Direction.UP),
            "s": lambda: self.camera.pan(Direction.DOWN),
            "a": lambda: self.camera.pan(Direction.LEFT),
            "d": lambda: self.camera.pan(Direction.RIGHT),
            "up": lambda: self.camera.zoom_by_step(Axis.Y, True),
            "down": lambda: self.camera.zoom_by_step(Axis.Y, False),
            "right": lambda: self.camera.zoom_by_step(Axis.X, True),
            "left": lambda: self.camera.zoom_by_step(Axis.X, False),
            "o": lambda: self.camera.change_zoom(True),
            "p": lambda: self.camera.change_zoom(False),
            "t": self.camera.reset_zoom,
            "r": self.camera.reset_center,
            "k": lambda: self.change_max_iterations(True),
            "l": lambda: self.change_max_iterations(False),
            "m": self.next_fractal,
            "n": self.prev_fractal,
            "b": self.next_color_scheme,
            "v": self.prev_color_scheme,
            "c": self.toggle_crosshair,
            "u": self.toggle_ui,
            "z": lambda: self.fractal.change_exponent(-CHANGE_MULTIBROT_EXPONENT_STEP),
            "x": lambda: self.fractal.change_exponent(CHANGE_MULTIBROT_EXPONENT_STEP),
        }

    def resize(self, new_screen_size):
        self.camera.resize(new_screen_size)

    def request(self):
        return RenderRequest(self.fractal, self.color_scheme, self.camera, self.max_iterations)

    def render(self, screen_size):
        """
        Render the fractal plus crosshair and UI overlays, returns packed 0x00RRGGBB words.
        """
        framebuffer = self.renderer.frame(self.request(), screen_size)

        if self.show_crosshair:
            self._draw_crosshair(framebuffer)

        if self.show_ui:
            self._draw_ui(framebuffer)

        return framebuffer.raw()

    def _draw_crosshair(self, framebuffer):
        center_x, center_y = framebuffer.width // 2, framebuffer.height // 2
        offsets = range(-CROSSHAIR_SIZE, CROSSHAIR_SIZE + 1)
        pixels = {(center_x + offset, center_y) for offset in offsets}
        pixels |= {(center_x, center_y + offset) for offset in offsets}

        for x, y in pixels:
            if 0 <= x < framebuffer.width and 0 <= y < framebuffer.height:
                framebuffer[x, y] = framebuffer[x, y].invert()

    def _draw_ui(self, framebuffer):
        start_y, line_offset = 40, 40
        view_x, view_y = self.camera.view_size
        center_x, center_y = self.camera.center_pos

        Label("Fractaller", 40.0).draw((10, start_y + line_offset // 2), framebuffer)
        lines = [
            f"Selected fractal: {self.fractal}",
            f"Selected coloring: {self.color_scheme}",
            f"Max iterations: {self.max_iterations}",
            f"Frametime: {self.renderer.last_frame_time * 1000.0:.1f} ms",
            f"Center pos: ({center_x}, {center_y})",
            f"View size: ({view_x}, {view_y})",
        ]
        for i, line in enumerate(lines, start=2):
            Label(line, 25.0).draw((10, start_y + line_offset * i), framebuffer)

    def change_max_iterations(self, increase):
        """Scale the iteration bound by 1.5 (rounded up), kept between 1 and MAX_ITERATIONS_LIMIT."""
        if increase:
            new_max = math.ceil(self.max_iterations * CHANGE_MAX_ITERATIONS_MULT)
        else:
            new_max = math.ceil(self.max_iterations / CHANGE_MAX_ITERATIONS_MULT)

        if new_max < 1 or new_max > MAX_ITERATIONS_LIMIT or new_max == self.max_iterations:
            return False
        self.max_iterations = new_max
        return True

    def next_fractal(self):
        self.fractal = self.fractal.next()
        return True

    def prev_fractal(self):
        self.fractal = self.fractal.prev()
        return True

    def next_color_scheme(self):
        self.color_scheme = self.color_scheme.next()
        return True

    def prev_color_scheme(self):
        self.color_scheme = self.color_scheme.prev()
        return True

    def toggle_crosshair(self):
        self.show_crosshair = not self.show_crosshair
        return True

    def toggle_ui(self):
        self.show_ui = not self.show_ui
        return True

    def handle_key(self, key):
        """Run the action bound to a key name (matplotlib naming), False for unbound keys."""
        action = self._key_actions.get(str(key).lower())
        if action is None:
            return False
        result = action()
        return True if result is None else bool(result)

    def handle_click(self, mouse_pos, screen_size):
        """Center the view on the clicked pixel."""
        world_pos = self.camera.screen_to_world(mouse_pos, screen_size)
        return self.camera.set_center_pos(world_pos)

    def zoom_to(self, delta, mouse_pos, screen_size):
        """Zoom by 'delta' steps keeping the point under the cursor anchored."""
        world_pos = self.camera.screen_to_world(mouse_pos, screen_size)
        return self.camera.zoom_toward(delta, world_pos)
