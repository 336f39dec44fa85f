import logging
import os
import sys

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from windflow import FluidSimConfig, create_solver

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("main")

# Configure case
config_file = sys.argv[1] if len(sys.argv) > 1 else "shared_configs/lid_driven_cavity.yaml"
num_steps = int(sys.argv[2]) if len(sys.argv) > 2 else 500
config = FluidSimConfig.from_yaml(config_file)
case_name = os.path.splitext(os.path.basename(config_file))[0]

# Run
log.info(f"Running {case_name} for {num_steps} steps...")
solver = create_solver(config)
solver.solve(num_steps)
log.info(f"Finished at t = {solver.current_time:.3f}, continuity residual {solver.continuity_residual():.3e}")
profile_file = solver.save_profiling_data()
log.info(f"Profile written to {profile_file}")

# Mid-plane slices (z = Nz/2)
snap = solver.snapshot()
vel = snap["velocity"]
nx, ny, nz = config.resolution
k = nz // 2
u = vel[0, k, :ny, :nx]
v = vel[1, k, :ny, :nx]
p = snap["pressure"][k]
solid = snap["flags"][k] != 0
speed = np.ma.masked_where(solid, np.sqrt(u ** 2 + v ** 2))
grid = solver.grid
x = grid.cell_centres(0)
y = grid.cell_centres(1)

pdf_filename = f"plots/{case_name}_{nx}x{ny}x{nz}_{config.solver_type.name.lower()}.pdf"
os.makedirs("plots", exist_ok=True)

with PdfPages(pdf_filename) as pdf:
    # --- Page 1: Flow Field Visualization ---
    fig1, axes = plt.subplots(2, 2, figsize=(15, 10))
    fig1.suptitle(f"{case_name}\nRe = {solver.fluid.get_reynolds_number():.0f}, grid {nx} x {ny} x {nz}, "
                  f"t = {solver.current_time:.2f}", fontsize=16)
    cf1 = axes[0, 0].contourf(x, y, u, levels=50, cmap="coolwarm")
    fig1.colorbar(cf1, ax=axes[0, 0])
    axes[0, 0].set_title("U Velocity")
    cf2 = axes[0, 1].contourf(x, y, v, levels=50, cmap="coolwarm")
    fig1.colorbar(cf2, ax=axes[0, 1])
    axes[0, 1].set_title("V Velocity")
    cf3 = axes[1, 0].contourf(x, y, np.ma.masked_where(solid, p), levels=50, cmap="viridis")
    fig1.colorbar(cf3, ax=axes[1, 0])
    axes[1, 0].set_title("Pressure")
    axes[1, 1].streamplot(x, y, u, v, color=speed.filled(0.0), cmap="viridis", density=1.2)
    axes[1, 1].set_title("Streamlines")
    for ax in axes.flat:
        ax.set_aspect("equal", "box")
    pdf.savefig(fig1)
    plt.close(fig1)

    # --- Page 2: Vertical centreline profile ---
    fig2, ax = plt.subplots(figsize=(6, 6))
    i = nx // 2
    ax.plot(u[1:-1, i], y[1:-1], "o-")
    ax.axvline(0.0, color="grey", lw=0.5)
    ax.set_xlabel("u")
    ax.set_ylabel("y")
    ax.set_title("U along the vertical centreline")
    pdf.savefig(fig2)
    plt.close(fig2)

    # --- Page 3: Profiling ---
    df = solver.profiler.to_dataframe()
    fig3, ax = plt.subplots(figsize=(8, 5))
    df["wall_time"].plot.bar(ax=ax)
    ax.set_ylabel("wall time [s]")
    ax.set_title("Time per stage")
    fig3.tight_layout()
    pdf.savefig(fig3)
    plt.close(fig3)

log.info(f"Report written to {pdf_filename}")
