r"""
Noise schedules for conditional probability paths.

A noise schedule is the pair of functions $(\alpha_t, \beta_t)$ that mixes a data
point $z$ with an independent standard normal sample $\epsilon$,
$x_t = \alpha_t z + \beta_t \epsilon$.  Every schedule here runs from pure noise
at t=0 ($\alpha_0 = 0$, $\beta_0 = 1$) to the data point at t=1
($\alpha_1 = 1$, $\beta_1 = 0$), except for `LinearStdDevNoiseScheduler`
whose $\beta_t$ grows with t.

Conventions shared by all schedules:
  - The input time is clamped to [0, 1] before evaluating $\alpha_t$ and
    $\beta_t$, so values outside the interval saturate.
  - The derivatives are only evaluated on the open interval (0, 1) and are
    exactly 0 at t <= 0 and t >= 1.  Several schedules have singular
    derivatives at the boundary (e.g. $-t/\sqrt{1 - t^2}$ at t=1) and the
    variance matching in the SDE integrator relies on this convention.
"""
import jax
import jax.numpy as jnp
import equinox as eqx
import abc
from typing import Tuple
from jaxtyping import Array, Float, Scalar
from probpath.util.misc import clamp01

__all__ = ['AbstractNoiseScheduler',
           'LinearNoiseScheduler',
           'SqrtNoiseScheduler',
           'InverseSqrtNoiseScheduler',
           'ConstantVarianceNoiseScheduler',
           'SqrtSqrtNoiseScheduler',
           'CircularCircularNoiseScheduler',
           'LinearVarianceNoiseScheduler',
           'LinearStdDevNoiseScheduler',
           'NOISE_SCHEDULER_NAMES',
           'get_noise_scheduler']

################################################################################################################

class AbstractNoiseScheduler(eqx.Module, abc.ABC):
  """Base class for the schedules.  Subclasses implement the closed form
  formulas and this class applies the clamping and boundary conventions.
  """

  @property
  @abc.abstractmethod
  def display_name(self) -> str:
    pass

  @abc.abstractmethod
  def alpha(self, t: Scalar) -> Scalar:
    """alpha(t) for t in [0, 1]"""
    pass

  @abc.abstractmethod
  def beta(self, t: Scalar) -> Scalar:
    """beta(t) for t in [0, 1]"""
    pass

  @abc.abstractmethod
  def alpha_derivative(self, t: Scalar) -> Scalar:
    """d alpha/dt for t in (0, 1)"""
    pass

  @abc.abstractmethod
  def beta_derivative(self, t: Scalar) -> Scalar:
    """d beta/dt for t in (0, 1)"""
    pass

  def get_alpha(self, t: Scalar) -> Scalar:
    return self.alpha(clamp01(t))

  def get_beta(self, t: Scalar) -> Scalar:
    return self.beta(clamp01(t))

  def get_alpha_derivative(self, t: Scalar) -> Scalar:
    return _interior_only(self.alpha_derivative, t)

  def get_beta_derivative(self, t: Scalar) -> Scalar:
    return _interior_only(self.beta_derivative, t)

  def get_params(self, t: Scalar) -> Tuple[Scalar, Scalar, Scalar, Scalar]:
    """Get alpha, alpha', beta and beta' at time t"""
    return (self.get_alpha(t),
            self.get_alpha_derivative(t),
            self.get_beta(t),
            self.get_beta_derivative(t))

def _interior_only(derivative, t: Scalar) -> Scalar:
  t = jnp.asarray(t, dtype=float)
  interior = (t > 0.0) & (t < 1.0)
  # Evaluate the formula at a safe point outside of (0, 1) so that singular
  # derivatives don't produce inf/nan in the discarded branch.
  t_safe = jnp.where(interior, t, 0.5)
  return jnp.where(interior, derivative(t_safe), 0.0)

################################################################################################################

class LinearNoiseScheduler(AbstractNoiseScheduler):

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = 1 - t'

  def alpha(self, t):
    return t

  def beta(self, t):
    return 1 - t

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return -jnp.ones_like(t)

class SqrtNoiseScheduler(AbstractNoiseScheduler):

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = √(1 - t)'

  def alpha(self, t):
    return t

  def beta(self, t):
    return jnp.sqrt(1 - t)

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return -0.5/jnp.sqrt(1 - t)

class InverseSqrtNoiseScheduler(AbstractNoiseScheduler):
  """The inverse of beta = sqrt(1 - t), beta = 1 - t^2.  Starts at 1, decreases
  slowly at first and then quickly near t=1."""

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = 1 - t²'

  def alpha(self, t):
    return t

  def beta(self, t):
    return 1 - t**2

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return -2*t

class ConstantVarianceNoiseScheduler(AbstractNoiseScheduler):
  """alpha^2 + beta^2 = 1 so that a standard normal data distribution keeps
  unit variance along the whole path."""

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = √(1 - t²)'

  def alpha(self, t):
    return t

  def beta(self, t):
    return jnp.sqrt(1 - t**2)

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return -t/jnp.sqrt(1 - t**2)

class SqrtSqrtNoiseScheduler(AbstractNoiseScheduler):

  @property
  def display_name(self) -> str:
    return 'α(t) = √t, β(t) = √(1 - t)'

  def alpha(self, t):
    return jnp.sqrt(t)

  def beta(self, t):
    return jnp.sqrt(1 - t)

  def alpha_derivative(self, t):
    return 0.5/jnp.sqrt(t)

  def beta_derivative(self, t):
    return -0.5/jnp.sqrt(1 - t)

class CircularCircularNoiseScheduler(AbstractNoiseScheduler):
  """Traces a quarter circle from (alpha, beta) = (0, 1) to (1, 0)"""

  @property
  def display_name(self) -> str:
    return 'α(t) = sin(πt/2), β(t) = cos(πt/2)'

  def alpha(self, t):
    return jnp.sin(0.5*jnp.pi*t)

  def beta(self, t):
    return jnp.cos(0.5*jnp.pi*t)

  def alpha_derivative(self, t):
    return 0.5*jnp.pi*jnp.cos(0.5*jnp.pi*t)

  def beta_derivative(self, t):
    return -0.5*jnp.pi*jnp.sin(0.5*jnp.pi*t)

class LinearVarianceNoiseScheduler(AbstractNoiseScheduler):
  """beta^2 = t(1 - t).  Note that beta vanishes at both ends of the interval."""

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = √(t(1 - t))'

  def alpha(self, t):
    return t

  def beta(self, t):
    return jnp.sqrt(t*(1 - t))

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return (1 - 2*t)/(2*jnp.sqrt(t*(1 - t)))

class LinearStdDevNoiseScheduler(AbstractNoiseScheduler):
  """beta = t.  The noise grows with t, so this schedule does NOT end at the
  data point."""

  @property
  def display_name(self) -> str:
    return 'α(t) = t, β(t) = t'

  def alpha(self, t):
    return t

  def beta(self, t):
    return t

  def alpha_derivative(self, t):
    return jnp.ones_like(t)

  def beta_derivative(self, t):
    return jnp.ones_like(t)

################################################################################################################

NOISE_SCHEDULER_NAMES = ('linear',
                         'sqrt',
                         'inverse-sqrt',
                         'constant-variance',
                         'sqrt-sqrt',
                         'circular-circular',
                         'linear-variance',
                         'linear-stddev')

def get_noise_scheduler(name: str) -> AbstractNoiseScheduler:
  """
  Get a noise scheduler by name.

  Raises:
    ValueError: If the name is not one of NOISE_SCHEDULER_NAMES
  """
  if name == 'linear':
    return LinearNoiseScheduler()
  elif name == 'sqrt':
    return SqrtNoiseScheduler()
  elif name == 'inverse-sqrt':
    return InverseSqrtNoiseScheduler()
  elif name == 'constant-variance':
    return ConstantVarianceNoiseScheduler()
  elif name == 'sqrt-sqrt':
    return SqrtSqrtNoiseScheduler()
  elif name == 'circular-circular':
    return CircularCircularNoiseScheduler()
  elif name == 'linear-variance':
    return LinearVarianceNoiseScheduler()
  elif name == 'linear-stddev':
    return LinearStdDevNoiseScheduler()
  else:
    raise ValueError(f"Unknown noise scheduler: {name}")
