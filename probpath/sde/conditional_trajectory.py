r"""
Conditional ODE and SDE trajectories of a probability path.

Given a data point $z$ and a noise schedule $(\alpha_t, \beta_t)$, the
conditional probability path is $p_t(x | z) = N(\alpha_t z, \beta_t^2 I)$.  This
module computes sample paths that follow it from an initial sample $x_0$ at
t=0 to the data point at t=1.

The ODE path is the deterministic interpolation $x_t = \alpha_t z + \beta_t x_0$.

The SDE path is simulated through the residual $r_t = x_t - \alpha_t z$, which
follows the linear SDE
$$dr_t = a_t r_t dt + \sigma_t dW_t, \quad a_t = \frac{\dot\beta_t}{\beta_t} - \frac{\sigma_t^2}{2\beta_t^2}.$$
Over a step of length dt with the coefficients frozen at the end of the step,
the exact transition of this Ornstein-Uhlenbeck process is
$$r_{t+dt} = \phi r_t + \sqrt{\frac{\sigma^2}{2a}(\phi^2 - 1)}\,\epsilon, \quad \phi = e^{a dt},$$
so the update matches the mean and variance of the process for any step size
rather than only to first order like Euler-Maruyama.  As $\beta_t \to 0$ the
drift $a_t \to -\infty$, so $\phi \to 0$ and the path collapses onto the data
point.

The noise is an input to the integrator, which makes every trajectory
deterministic given its increments (see `probpath.sde.brownian`).
"""
import jax
import jax.numpy as jnp
import equinox as eqx
from typing import Union
from jaxtyping import Array, Float, Scalar
from probpath.schedules.noise_scheduler import AbstractNoiseScheduler
from probpath.schedules.diffusion_coefficient import AbstractDiffusionCoefficientScheduler, ConstantDiffusionCoefficientScheduler
from probpath.util.misc import as_point, as_times
import probpath.util as util

__all__ = ['SDETrajectoryParams',
           'calculate_conditional_ode_trajectory',
           'calculate_conditional_sde_trajectory',
           'conditional_velocity']

class SDETrajectoryParams(eqx.Module):
  """
  Numerical settings for the conditional SDE integrator.

  Attributes:
    beta_floor: Lower bound applied to beta(t) before dividing by it.  beta
      reaches 0 at t=1 for most schedules.
    drift_tolerance: Below this magnitude the drift rate is treated as 0 and
      the variance increment falls back to sigma^2*dt.
  """
  beta_floor: float = 1e-4
  drift_tolerance: float = 1e-8

  def to_dict(self) -> dict:
    return {
      "beta_floor": self.beta_floor,
      "drift_tolerance": self.drift_tolerance
    }

################################################################################################################

def calculate_conditional_ode_trajectory(initial_sample: Float[Array, '2'],
                                         data_point: Float[Array, '2'],
                                         scheduler: AbstractNoiseScheduler,
                                         frame_times: Float[Array, 'T']) -> Float[Array, 'T 2']:
  """The deterministic path x_t = alpha(t)*data_point + beta(t)*initial_sample.

  Every point only depends on its own time, so the path can be evaluated at
  any subset of times.

  **Arguments**

  - `initial_sample`: The noise sample at t=0
  - `data_point`: The point the path ends at
  - `scheduler`: The noise schedule
  - `frame_times`: The times to evaluate the path at

  **Returns**

  - The points of the path, one per time
  """
  x0 = as_point(initial_sample, 'initial_sample')
  z = as_point(data_point, 'data_point')
  frame_times = as_times(frame_times)

  def point_at(t):
    return scheduler.get_alpha(t)*z + scheduler.get_beta(t)*x0

  return jax.vmap(point_at)(frame_times)

def calculate_conditional_sde_trajectory(initial_sample: Float[Array, '2'],
                                         data_point: Float[Array, '2'],
                                         scheduler: AbstractNoiseScheduler,
                                         frame_times: Float[Array, 'T'],
                                         diffusion_scheduler: Union[AbstractDiffusionCoefficientScheduler, float, Scalar],
                                         noise: Float[Array, 'T-1 2'],
                                         params: SDETrajectoryParams = SDETrajectoryParams()) -> Float[Array, 'T 2']:
  """Simulate the conditional SDE with the moment matched update described in
  the module docstring.

  Steps with a non-positive time increment are skipped: the previous point is
  repeated and the residual is left unchanged.

  The path only lands on `data_point` when sigma(1) > 0.  The collapse at t=1
  comes from the -sigma^2/(2 beta^2) term because beta'(1) is 0 by convention.
  With sigma = 0 no noise is injected and the residual decays like
  exp(beta'/beta dt) on every step, but it is left unchanged by the final step.

  **Arguments**

  - `initial_sample`: The noise sample at frame_times[0]
  - `data_point`: The point the path ends at
  - `scheduler`: The noise schedule
  - `frame_times`: The time grid
  - `diffusion_scheduler`: The diffusion coefficient sigma(t).  A number is
                           treated as a constant coefficient.
  - `noise`: Wiener increments, increment i is scaled by the square root of
             frame_times[i+1] - frame_times[i]
  - `params`: Numerical settings

  **Returns**

  - The points of the path, one per time
  """
  x0 = as_point(initial_sample, 'initial_sample')
  z = as_point(data_point, 'data_point')
  frame_times = as_times(frame_times)
  noise = jnp.asarray(noise, dtype=float)
  n_steps = frame_times.shape[0] - 1
  if noise.shape != (n_steps, 2):
    raise ValueError(f"noise must have shape ({n_steps}, 2) for {frame_times.shape[0]} frame times, got {noise.shape}")

  if not isinstance(diffusion_scheduler, AbstractDiffusionCoefficientScheduler):
    diffusion_scheduler = ConstantDiffusionCoefficientScheduler(diffusion_scheduler)

  residual0 = x0 - scheduler.get_alpha(frame_times[0])*z

  def body(carry, inputs):
    residual, x_prev = carry
    t_prev, t, dW = inputs
    dt = t - t_prev
    valid = dt > 0
    dt = jnp.where(valid, dt, 1.0)

    alpha = scheduler.get_alpha(t)
    beta = jnp.maximum(scheduler.get_beta(t), params.beta_floor)
    beta_dot = scheduler.get_beta_derivative(t)
    sigma = diffusion_scheduler.get_diffusion(t)

    a = beta_dot/beta - sigma**2/(2*beta**2)
    phi = jnp.exp(a*dt)

    near_zero_drift = jnp.abs(a) < params.drift_tolerance
    a_safe = jnp.where(near_zero_drift, 1.0, a)
    variance_increment = jnp.where(near_zero_drift,
                                   sigma**2*dt,
                                   sigma**2/(2*a_safe)*(phi**2 - 1))
    noise_scale = jnp.sqrt(jnp.maximum(variance_increment, 0.0))

    # The increments are scaled by sqrt(dt) of their own interval
    eps = dW/jnp.sqrt(dt)

    new_residual = phi*residual + noise_scale*eps
    xt = alpha*z + new_residual

    new_residual, xt = util.where(valid, (new_residual, xt), (residual, x_prev))
    return (new_residual, xt), xt

  inputs = (frame_times[:-1], frame_times[1:], noise)
  _, xts = jax.lax.scan(body, (residual0, x0), inputs)
  return jnp.concatenate([x0[None], xts], axis=0)

################################################################################################################

def conditional_velocity(scheduler: AbstractNoiseScheduler,
                         data_point: Float[Array, '2'],
                         t: Scalar,
                         xt: Union[Float[Array, '2'], Float[Array, 'N 2']],
                         params: SDETrajectoryParams = SDETrajectoryParams()) -> Union[Float[Array, '2'], Float[Array, 'N 2']]:
  r"""The conditional vector field that generates the ODE path,
  $u_t(x | z) = \dot\alpha_t z + \dot\beta_t (x - \alpha_t z)/\beta_t$.
  Works for a single point or a batch of points.
  """
  z = as_point(data_point, 'data_point')
  alpha, alpha_dot, beta, beta_dot = scheduler.get_params(t)
  beta = jnp.maximum(beta, params.beta_floor)
  x0 = (jnp.asarray(xt, dtype=float) - alpha*z)/beta
  return alpha_dot*z + beta_dot*x0
