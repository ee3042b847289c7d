r"""
One dimensional Gaussian densities and weighted mixtures.

These are used to draw the marginal densities of a probability path.  For data
distributed as a mixture $\sum_k w_k N(\mu_k, \sigma_k^2)$ and a noise schedule
$(\alpha_t, \beta_t)$, the marginal at time t is again a mixture,
$p_t(x) = \sum_k w_k N(x; \alpha_t \mu_k, \alpha_t^2 \sigma_k^2 + \beta_t^2)$.
"""
import jax
import jax.numpy as jnp
import equinox as eqx
from typing import Callable, List, Sequence, Tuple, Union
from jaxtyping import Array, Float, Scalar
from probpath.util.misc import InvalidParameterError
from probpath.schedules.noise_scheduler import AbstractNoiseScheduler

__all__ = ['SQRT_TWO_PI',
           'GaussianComponent',
           'gaussian_pdf',
           'normalize_gaussian_components',
           'make_gaussian_mixture',
           'mixture_mean_and_std',
           'marginal_mixture_components']

SQRT_TWO_PI = jnp.sqrt(2*jnp.pi)

class GaussianComponent(eqx.Module):
  """A weighted 1D Gaussian.  Validation happens in the functions that consume
  components so that unnormalized/intermediate components can be built freely."""
  weight: Scalar
  mean: Scalar
  std_dev: Scalar

def _check_std_dev(std_dev: Union[float, Scalar]):
  if jnp.any(jnp.asarray(std_dev) <= 0):
    raise InvalidParameterError(f"Gaussian standard deviation must be positive, got {std_dev}")

################################################################################################################

def gaussian_pdf(x: Union[Scalar, Float[Array, 'N']],
                 mean: Scalar,
                 std_dev: Scalar) -> Union[Scalar, Float[Array, 'N']]:
  """Density of N(mean, std_dev^2) at x.

  Raises:
    InvalidParameterError: If std_dev <= 0
  """
  _check_std_dev(std_dev)
  centered = (jnp.asarray(x, dtype=float) - mean)/std_dev
  return jnp.exp(-0.5*centered**2)/(SQRT_TWO_PI*std_dev)

def normalize_gaussian_components(components: Sequence[GaussianComponent]) -> List[GaussianComponent]:
  """Rescale the weights so that they sum to 1.  Returns new components and
  leaves the inputs untouched.

  Raises:
    InvalidParameterError: If any weight is negative, if the total weight is
      not positive or if any component has a non-positive standard deviation
  """
  for component in components:
    if component.weight < 0:
      raise InvalidParameterError(f"Gaussian mixture weights must be non-negative, got {component.weight}")

  total_weight = sum(component.weight for component in components)
  if total_weight <= 0:
    raise InvalidParameterError(f"Gaussian mixture must have a positive total weight, got {total_weight}")

  normalized = []
  for component in components:
    _check_std_dev(component.std_dev)
    normalized.append(GaussianComponent(weight=component.weight/total_weight,
                                        mean=component.mean,
                                        std_dev=component.std_dev))
  return normalized

def make_gaussian_mixture(components: Sequence[GaussianComponent]) -> Callable[[Union[Scalar, Float[Array, 'N']]], Union[Scalar, Float[Array, 'N']]]:
  """Returns x -> sum_k w_k N(x; mu_k, sigma_k^2).  This is only a normalized
  density if the weights already sum to 1.
  """
  components = list(components)
  for component in components:
    _check_std_dev(component.std_dev)

  def mixture(x):
    out = jnp.zeros_like(jnp.asarray(x, dtype=float))
    for component in components:
      out = out + component.weight*gaussian_pdf(x, component.mean, component.std_dev)
    return out

  return mixture

################################################################################################################

def mixture_mean_and_std(components: Sequence[GaussianComponent]) -> Tuple[Scalar, Scalar]:
  """Mean and standard deviation of the mixture distribution (the weights are
  normalized first).
  """
  components = normalize_gaussian_components(components)
  weights = jnp.array([c.weight for c in components], dtype=float)
  means = jnp.array([c.mean for c in components], dtype=float)
  std_devs = jnp.array([c.std_dev for c in components], dtype=float)

  mean = jnp.sum(weights*means)
  second_moment = jnp.sum(weights*(std_devs**2 + means**2))
  variance = jnp.maximum(second_moment - mean**2, 0.0)
  return mean, jnp.sqrt(variance)

def marginal_mixture_components(components: Sequence[GaussianComponent],
                                scheduler: AbstractNoiseScheduler,
                                t: Scalar) -> List[GaussianComponent]:
  r"""Components of the marginal $p_t$ of the probability path when the data
  follows the mixture `components`.  Each component is mapped to
  $N(\alpha_t \mu_k, \alpha_t^2 \sigma_k^2 + \beta_t^2)$ and keeps its weight.
  """
  alpha = scheduler.get_alpha(t)
  beta = scheduler.get_beta(t)
  return [GaussianComponent(weight=c.weight,
                            mean=alpha*c.mean,
                            std_dev=jnp.sqrt(alpha**2*c.std_dev**2 + beta**2))
          for c in components]
