"""Schedules for the diffusion coefficient sigma(t) of the conditional SDE.

Only the magnitude of the noise is described here.  The drift correction that
keeps the SDE on the probability path lives in the trajectory integrator.
"""
import jax.numpy as jnp
import equinox as eqx
import abc
from typing import Union
from jaxtyping import Array, Float, Scalar
from probpath.util.misc import clamp01, InvalidParameterError

__all__ = ['AbstractDiffusionCoefficientScheduler',
           'ConstantDiffusionCoefficientScheduler',
           'LinearDiffusionCoefficientScheduler',
           'LinearReverseDiffusionCoefficientScheduler',
           'QuadraticDiffusionCoefficientScheduler',
           'SqrtDiffusionCoefficientScheduler',
           'CosineDiffusionCoefficientScheduler',
           'SineBumpDiffusionCoefficientScheduler',
           'DIFFUSION_COEFFICIENT_SCHEDULER_NAMES',
           'get_diffusion_coefficient_scheduler']

class AbstractDiffusionCoefficientScheduler(eqx.Module, abc.ABC):
  """sigma(t) = max_diffusion*shape(t) where shape maps [0, 1] into [0, 1]"""

  max_diffusion: eqx.AbstractVar[Scalar]

  def __check_init__(self):
    if jnp.any(~(jnp.asarray(self.max_diffusion) >= 0)):
      raise InvalidParameterError(f"max_diffusion must be non-negative, got {self.max_diffusion}")

  @abc.abstractmethod
  def shape(self, t: Scalar) -> Scalar:
    """The profile of the schedule for t in [0, 1]"""
    pass

  def get_diffusion(self, t: Scalar) -> Scalar:
    return self.max_diffusion*self.shape(clamp01(t))

  def get_max_diffusion(self) -> Scalar:
    return self.max_diffusion

  def __call__(self, t: Scalar) -> Scalar:
    return self.get_diffusion(t)

################################################################################################################

class ConstantDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):

  max_diffusion: Scalar

  def shape(self, t):
    return jnp.ones_like(t)

class LinearDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):

  max_diffusion: Scalar

  def shape(self, t):
    return t

class LinearReverseDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):

  max_diffusion: Scalar

  def shape(self, t):
    return 1 - t

class QuadraticDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):

  max_diffusion: Scalar

  def shape(self, t):
    return t**2

class SqrtDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):

  max_diffusion: Scalar

  def shape(self, t):
    return jnp.sqrt(t)

class CosineDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):
  """Smoothly ramps from 0 at t=0 to max_diffusion at t=1"""

  max_diffusion: Scalar

  def shape(self, t):
    return 0.5*(1 - jnp.cos(jnp.pi*t))

class SineBumpDiffusionCoefficientScheduler(AbstractDiffusionCoefficientScheduler):
  """Vanishes at both ends and peaks at t=0.5"""

  max_diffusion: Scalar

  def shape(self, t):
    # sin(pi) rounds slightly negative in float32
    return jnp.maximum(jnp.sin(jnp.pi*t), 0.0)

################################################################################################################

DIFFUSION_COEFFICIENT_SCHEDULER_NAMES = ('constant',
                                         'linear',
                                         'linear-reverse',
                                         'quadratic',
                                         'sqrt',
                                         'cosine',
                                         'sine-bump')

def get_diffusion_coefficient_scheduler(name: str,
                                        max_diffusion: Union[float, Scalar]) -> AbstractDiffusionCoefficientScheduler:
  """
  Get a diffusion coefficient scheduler by name.

  Raises:
    ValueError: If the name is not one of DIFFUSION_COEFFICIENT_SCHEDULER_NAMES
  """
  if name == 'constant':
    return ConstantDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'linear':
    return LinearDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'linear-reverse':
    return LinearReverseDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'quadratic':
    return QuadraticDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'sqrt':
    return SqrtDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'cosine':
    return CosineDiffusionCoefficientScheduler(max_diffusion)
  elif name == 'sine-bump':
    return SineBumpDiffusionCoefficientScheduler(max_diffusion)
  else:
    raise ValueError(f"Unknown diffusion coefficient scheduler: {name}")
