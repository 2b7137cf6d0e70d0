"""
Basins of attraction of a damped magnetic pendulum with three magnets on the
unit circle.

Each starting position on the grid is released at rest and integrated until
the bob dwells near one magnet (or the rest position) for 5 time units.
"""
import matplotlib.pyplot as plt

from magbasin import (
    CashKarp54,
    ClassifierConfig,
    GridSpec,
    PendulumSystem,
    basin_map,
)
from magbasin.plot import basin_plot, save_basin_image
from magbasin.utils import Timer

system = PendulumSystem.with_attractors(
    [(-0.5, 0.86602540378), (-0.5, -0.86602540378), (1.0, 0.0)],
    height=0.05, mass=1.0, gravity=9.8, drag=0.2, length=10.0,
)
integrator = CashKarp54(rel_tol=1e-6, abs_tol=1e-6, max_step_size=0.1)

with Timer("Calculation time"):
    basin = basin_map(
        system,
        integrator,
        # 0.1 over [-7.5, 7.5) gives the classic 150x150 picture
        GridSpec(resolution=0.1, extent=7.5),
        config=ClassifierConfig(max_trials=1000, dwell_time=5.0),
        parallel_mode="numba",
    )

print(f"region counts: {basin.counts()}")
print(f"converged: {100.0 * basin.converged_fraction:.1f}%")

save_basin_image(basin, "fractal.png")

basin_plot(basin, title="magnetic pendulum basins")
plt.show()
