"""EpiLoc visualization library.

Modules:
  - style: Dark theme colours and helpers
  - epidemic: State trajectories, location distribution, infections by location
"""

from epiloc.viz.style import (  # noqa: F401
    DARK_BG,
    DARK_PANEL,
    GRID_COLOR,
    LOCATION_COLORS,
    STATE_COLORS,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from epiloc.viz.epidemic import (  # noqa: F401
    plot_infections_by_location,
    plot_location_distribution,
    plot_state_trajectory,
)
