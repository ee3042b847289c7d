import jax
import jax.numpy as jnp
from typing import Union, Any
from jaxtyping import Array, Float, Scalar, Bool, PyTree
import jax.tree_util as jtu

__all__ = ['InvalidParameterError',
           'clamp01',
           'where',
           'as_point',
           'as_times']

class InvalidParameterError(ValueError):
  """Raised when a numerical parameter is outside of its valid domain
  (non-positive standard deviation, non-positive total weight, etc.)."""

################################################################################################################

def clamp01(t: Union[Scalar, Float[Array, '...']]) -> Float[Array, '...']:
  """Saturate t to the unit interval"""
  return jnp.clip(jnp.asarray(t, dtype=float), 0.0, 1.0)

def where(cond: Bool, true: PyTree, false: PyTree) -> Any:
  return jtu.tree_map(lambda x, y: jnp.where(cond, x, y), true, false)

################################################################################################################

def as_point(x: Any, name: str = 'point') -> Float[Array, '2']:
  """Convert a pair-like object into a 2D point"""
  x = jnp.asarray(x, dtype=float)
  if x.shape != (2,):
    raise ValueError(f"{name} must have shape (2,), got {x.shape}")
  return x

def as_times(frame_times: Any) -> Float[Array, 'T']:
  frame_times = jnp.asarray(frame_times, dtype=float)
  if frame_times.ndim != 1:
    raise ValueError(f"frame_times must be 1 dimensional, got {frame_times.ndim} dimensions")
  if frame_times.shape[0] == 0:
    raise ValueError("frame_times must contain at least one time")
  return frame_times
