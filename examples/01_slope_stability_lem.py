# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # 01 — Slope Stability: Limit Equilibrium Methods
#
# Evaluates the factor of safety of a simple slope on one trial
# circle with three methods of slices:
#
# | Method                     | Equilibrium      | Interslice assumptions |
# |----------------------------|------------------|------------------------|
# | **Fellenius (Ordinary)**   | Moment           | None                   |
# | **Bishop Simplified**      | Moment           | Horizontal forces only |
# | **Janbu Simplified**       | Horizontal force | Zero interslice shear  |
#
# **Module**: `geoforce.slope`

# %%
from geoforce.slope import (
    SlopeInput,
    SlopeProfile,
    TrialCircle,
    generate_slices,
    fellenius_ordinary,
    bishop_simplified,
    janbu_simplified,
)

# %% [markdown]
# ## 1. Define the Slope
#
# A 10 m high slope inclined at 30° in a single soil:
#
# | c' (kPa) | φ' (°) | γ (kN/m³) |
# |----------|--------|-----------|
# | 25       | 25     | 18        |
#
# The toe sits at the origin; the ground is flat on both sides of the
# face.

# %%
slope = SlopeInput(
    height=10.0,
    slope_angle=30.0,
    gamma=18.0,
    cohesion=25.0,
    friction_angle=25.0,
)
profile = SlopeProfile(slope)
print(f"Toe: {profile.toe}, crest: ({profile.crest[0]:.2f}, {profile.crest[1]:.2f})")

# %% [markdown]
# ## 2. Define a Trial Circle
#
# Centre $(8, 18)$ and radius $19$ m.  The arc enters the face near the
# toe and leaves through the crest ground.

# %%
circle = TrialCircle(xc=8.0, yc=18.0, radius=19.0)
x_entry, x_exit = circle.entry_exit(profile)
slices = generate_slices(profile, circle)
print(f"Entry x = {x_entry:.2f} m, exit x = {x_exit:.2f} m, {len(slices)} slices")

# %% [markdown]
# ## 3. Compare LEM Methods

# %%
fos_fellenius = fellenius_ordinary(profile, circle, slices)
fos_bishop = bishop_simplified(profile, circle, slices)
fos_janbu = janbu_simplified(profile, circle, slices)

print("Factor of Safety — single trial surface:")
print(f"  Fellenius (Ordinary):   {fos_fellenius.fs:.3f}")
print(f"  Bishop Simplified:      {fos_bishop.fs:.3f}  ({fos_bishop.iterations} iterations)")
print(f"  Janbu Simplified:       {fos_janbu.fs:.3f}  (f0 = {fos_janbu.correction:.3f})")

# %% [markdown]
# ## 4. Effect of Pore Pressure and Earthquake Loading
#
# A pore-pressure ratio $r_u$ lowers the effective normal stress; a
# horizontal seismic coefficient $k_h$ adds driving moment.

# %%
for label, overrides in [
    ("dry, static", {}),
    ("ru = 0.3", {"ru": 0.3}),
    ("kh = 0.15", {"kh": 0.15}),
]:
    p = SlopeProfile(SlopeInput(
        height=10.0, slope_angle=30.0, gamma=18.0, cohesion=25.0,
        friction_angle=25.0, **overrides,
    ))
    print(f"  {label:<12s} Bishop FoS = {bishop_simplified(p, circle).fs:.3f}")

# %% [markdown]
# ## 5. Sensitivity to Slice Count

# %%
for n in [5, 10, 15, 20, 30, 50, 75, 100]:
    s = generate_slices(profile, circle, n_slices=n)
    print(f"  n = {n:3d}: FoS = {bishop_simplified(profile, circle, s).fs:.4f}")

# %% [markdown]
# ## Key Takeaways
#
# - Fellenius ignores interslice forces and is usually the most
#   conservative.
# - With φ = 0 Bishop and Fellenius coincide.
# - Janbu's force balance needs the f₀ correction to approach Bishop.
# - Convergence with slice count is rapid; 30 slices is usually
#   sufficient.
# - This analysis uses a **single trial surface**; see Example 02
#   for automated critical surface search.
