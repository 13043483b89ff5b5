MIN_SCALE = 0.5
MAX_SCALE = 3.0


def clamp_scale(value):
    return min(max(value, MIN_SCALE), MAX_SCALE)


class ViewTransform:
    """
    Scale/offset applied at draw time. Never touches node positions.

    Screen mapping used by the graph widget:
        screen = view_center + offset + (world - world_center) * scale
    """

    def __init__(self, scale=1.0, offset=(0.0, 0.0)):
        self.scale = clamp_scale(scale)
        self.offset_x, self.offset_y = offset
        self._target = None  # (scale, offset_x, offset_y) while animating

    @property
    def offset(self):
        return (self.offset_x, self.offset_y)

    @property
    def animating(self):
        return self._target is not None

    @property
    def target(self):
        return self._target

    def pinch(self, factor):
        if factor <= 0:
            raise ValueError(f"pinch factor must be positive, got {factor}")
        self._target = None
        self.scale = clamp_scale(self.scale * factor)
        return self.scale

    def drag(self, dx, dy):
        self._target = None
        self.offset_x += dx
        self.offset_y += dy

    def reset(self):
        self._target = None
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0

    def animate_to(self, scale, offset):
        self._target = (clamp_scale(scale), float(offset[0]), float(offset[1]))

    def focus_on(self, position, world_center, scale=1.5):
        """Animates toward `scale` with the world point `position` drawn at the view center."""
        scale = clamp_scale(scale)
        offset = ((world_center[0] - position[0]) * scale, (world_center[1] - position[1]) * scale)
        self.animate_to(scale, offset)

    def advance(self, fraction=0.2, epsilon=0.01):
        """Eases toward the animation target; snaps when close. Returns True while still animating."""
        if self._target is None:
            return False

        scale, ox, oy = self._target
        self.scale += (scale - self.scale) * fraction
        self.offset_x += (ox - self.offset_x) * fraction
        self.offset_y += (oy - self.offset_y) * fraction

        if abs(scale - self.scale) < epsilon * 0.01 and abs(ox - self.offset_x) < epsilon and abs(oy - self.offset_y) < epsilon:
            self.finish_animation()
            return False
        return True

    def finish_animation(self):
        if self._target is None:
            return
        self.scale, self.offset_x, self.offset_y = self._target
        self._target = None

    def world_to_screen(self, x, y, view_size, world_center):
        w, h = view_size
        cx, cy = world_center
        return (
            w / 2 + self.offset_x + (x - cx) * self.scale,
            h / 2 + self.offset_y + (y - cy) * self.scale,
        )

    def screen_to_world(self, sx, sy, view_size, world_center):
        # Inverse of world_to_screen
        w, h = view_size
        cx, cy = world_center
        return (
            (sx - w / 2 - self.offset_x) / self.scale + cx,
            (sy - h / 2 - self.offset_y) / self.scale + cy,
        )
