from turbprep.computations import rotate_points_2d
from turbprep.structs import InterpolatedBladeSection


import numpy as np
import plotly.graph_objects as go


from typing import List, Optional, Sequence


PLOT_CYCLE = ['#1f77b4', '#ff7f0e', '#2ca02c', '#d62728', '#9467bd',
              '#8c564b', '#e377c2', '#7f7f7f', '#bcbd22', '#17becf']

COMPONENT_INDEX = {'u': 0, 'v': 1, 'w': 2}


def _show(fig: go.Figure) -> None:
    try:
        fig.show(renderer="browser")
    except Exception:
        # Fallback for headless environments (like CI/CD)
        try:
            fig.show(renderer="png")
        except Exception:
            # If no renderers work, just skip showing
            pass


def plot_blade_sections(sections: List[InterpolatedBladeSection],
                        show_plot: bool = True,
                        return_fig: bool = False,
                        show_chord_lines: bool = True,
                        plot_cycle: Optional[Sequence[str]] = None):
    """
    Create a 3D plot of placed blade sections.

    Args:
        sections: Sections from root to tip.
        show_plot: Whether to display the plot (default: True).
        return_fig: Whether to return the figure object (default: False).
        show_chord_lines: Draw the twisted chord line of every section.
        plot_cycle: Colours cycled over the sections.

    Returns:
        Plotly figure object if return_fig=True, otherwise None.
    """
    if plot_cycle is None:
        plot_cycle = PLOT_CYCLE

    fig = go.Figure()
    absmin, absmax = np.inf, -np.inf

    for idx, section in enumerate(sections):
        color = plot_cycle[idx % len(plot_cycle)]
        xyz = section.transformed_coordinates()
        closed = np.vstack([xyz, xyz[:1]])
        absmin = min(absmin, np.min(closed))
        absmax = max(absmax, np.max(closed))

        fig.add_trace(go.Scatter3d(
            x=closed[:, 0],
            y=closed[:, 1],
            z=closed[:, 2],
            mode='lines',
            line=dict(color=color),
            name=f'{section.airfoil_name} r={section.radius:.2f}m'
        ))

        if show_chord_lines:
            # chord line from the leading edge, rotated by the section twist
            le = xyz[section.geometry.get_marker("LE").index]
            chordline = np.array([[0.0, 0.0], [section.chord, 0.0]])
            chordline = rotate_points_2d(chordline, section.twist) + le[:2]
            fig.add_trace(go.Scatter3d(
                x=chordline[:, 0],
                y=chordline[:, 1],
                z=[section.radius, section.radius],
                mode='lines',
                line=dict(color=color, dash='dash'),
                showlegend=False
            ))

    if sections:
        fig.update_layout(
            scene=dict(
                aspectmode='cube',
                xaxis=dict(range=[absmin, absmax]),
                yaxis=dict(range=[absmin, absmax]),
                zaxis=dict(range=[absmin, absmax])
            ),
            margin=dict(l=0, r=0, b=0, t=0)
        )
    fig.update_layout(scene_camera=dict(eye=dict(x=1.5, y=-2., z=1.5)))

    if show_plot:
        _show(fig)

    if return_fig:
        return fig
    else:
        return None


def plot_airfoil(geometry, npoints: int = 200, show_plot: bool = True, return_fig: bool = False):
    """Plot a canonical airfoil contour together with its resampled outline."""
    xy = geometry.coordinates_array()
    resampled = geometry.resampled(npoints)

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=xy[:, 0], y=xy[:, 1], mode='markers', name='Points'))
    fig.add_trace(go.Scatter(x=resampled[:, 0], y=resampled[:, 1], mode='lines', name='Resampled'))
    fig.update_layout(title=f'{geometry.name} ({geometry.relative_thickness:.2f}%)',
                      yaxis=dict(scaleanchor='x', scaleratio=1))

    if show_plot:
        _show(fig)

    if return_fig:
        return fig
    else:
        return None


def plot_wind_field(manager, iteration: int = 0, component: str = 'u',
                    show_plot: bool = True, return_fig: bool = False):
    """
    Plot one velocity component of a loaded wind field on the (y, z) grid.

    Args:
        manager: Loaded TurbSimManager.
        iteration: Iteration within the usable window.
        component: 'u', 'v' or 'w'.
        show_plot: Whether to display the plot (default: True).
        return_fig: Whether to return the figure object (default: False).

    Returns:
        Plotly figure object if return_fig=True, otherwise None.
    """
    if component not in COMPONENT_INDEX:
        raise ValueError(f"Unknown velocity component: {component}")
    values = manager.velocity_components(iteration)[COMPONENT_INDEX[component]]
    grid = manager.grid

    fig = go.Figure(data=go.Heatmap(
        x=grid.axis_y(),
        y=grid.axis_z(),
        z=values,
        colorscale='Viridis',
        colorbar=dict(title=f'{component} [m/s]')
    ))
    fig.update_layout(
        title=f'Wind field, iteration {iteration} (t = {iteration * manager.timestep():.2f} s)',
        xaxis_title='y [m]',
        yaxis_title='z [m]',
        yaxis=dict(scaleanchor='x', scaleratio=1)
    )

    if show_plot:
        _show(fig)

    if return_fig:
        return fig
    else:
        return None
