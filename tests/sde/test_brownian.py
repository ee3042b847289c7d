import jax
import jax.numpy as jnp
from jax import random
import pytest

from probpath.sde.brownian import (
  box_muller,
  generate_brownian_noise,
  generate_brownian_noise_for_times,
  compute_brownian_motion
)
from probpath.util.misc import InvalidParameterError


@pytest.fixture
def key():
  """JAX PRNGKey fixture."""
  return random.PRNGKey(0)


class TestBoxMuller:
  """Tests for the uniform to normal transform"""

  def test_known_values(self):
    z1, z2 = box_muller(jnp.array(1.0), jnp.array(0.3))
    assert jnp.allclose(z1, 0.0) and jnp.allclose(z2, 0.0)

    z1, z2 = box_muller(jnp.exp(-0.5), jnp.array(0.0))
    assert jnp.allclose(z1, 1.0)
    assert jnp.allclose(z2, 0.0)

    z1, z2 = box_muller(jnp.exp(-0.5), jnp.array(0.25))
    assert jnp.allclose(z1, 0.0, atol=1e-6)
    assert jnp.allclose(z2, 1.0)


class TestGenerateBrownianNoise:
  """Tests for increments on a uniform grid"""

  def test_shape_and_finite(self, key):
    noise = generate_brownian_noise(key, 100, 0.01)
    assert noise.shape == (100, 2)
    assert jnp.all(jnp.isfinite(noise))

  def test_reproducible(self, key):
    assert jnp.array_equal(generate_brownian_noise(key, 10, 0.1),
                           generate_brownian_noise(key, 10, 0.1))
    k1, k2 = random.split(key)
    assert not jnp.allclose(generate_brownian_noise(k1, 10, 0.1),
                            generate_brownian_noise(k2, 10, 0.1))

  def test_moments(self, key):
    dt = 0.01
    noise = generate_brownian_noise(key, 20000, dt)
    assert jnp.allclose(noise.mean(axis=0), 0.0, atol=5e-3)
    assert jnp.allclose(noise.var(axis=0), dt, rtol=0.1)
    # The two coordinates are independent
    corr = jnp.corrcoef(noise[:,0], noise[:,1])[0,1]
    assert jnp.abs(corr) < 0.05

  @pytest.mark.parametrize("num_steps,dt", [(0, 0.1), (-1, 0.1), (10, 0.0), (10, -0.5)])
  def test_invalid(self, key, num_steps, dt):
    with pytest.raises(InvalidParameterError):
      generate_brownian_noise(key, num_steps, dt)


class TestGenerateBrownianNoiseForTimes:
  """Tests for increments on a non-uniform grid"""

  def test_length(self, key):
    noise = generate_brownian_noise_for_times(key, [0, 0.1, 0.3, 0.7, 1.0])
    assert noise.shape == (4, 2)

  def test_non_uniform_finite(self, key):
    noise = generate_brownian_noise_for_times(key, [0, 0.01, 0.5, 1.0])
    assert noise.shape == (3, 2)
    assert jnp.all(jnp.isfinite(noise))

  def test_matches_uniform_version(self, key):
    n = 50
    times = jnp.arange(n + 1)/n
    assert jnp.allclose(generate_brownian_noise_for_times(key, times),
                        generate_brownian_noise(key, n, 1/n),
                        rtol=1e-4, atol=1e-6)

  def test_scaled_per_interval(self):
    times = jnp.array([0.0, 0.01, 1.0])
    keys = random.split(random.PRNGKey(1), 5000)
    noise = jax.vmap(lambda k: generate_brownian_noise_for_times(k, times))(keys)
    var = noise.var(axis=(0, 2))
    assert jnp.allclose(var, jnp.diff(times), rtol=0.1)

  def test_zero_width_interval(self, key):
    noise = generate_brownian_noise_for_times(key, [0.0, 0.5, 0.5, 1.0])
    assert jnp.array_equal(noise[1], jnp.zeros(2))

  def test_single_time(self, key):
    assert generate_brownian_noise_for_times(key, [0.0]).shape == (0, 2)


class TestComputeBrownianMotion:
  """Tests for accumulating increments into paths"""

  def test_path(self, key):
    noise = generate_brownian_noise(key, 20, 0.05)
    path = compute_brownian_motion(noise, sigma=0.5)
    assert path.shape == (21, 2)
    assert jnp.array_equal(path[0], jnp.zeros(2))
    assert jnp.allclose(jnp.diff(path, axis=0), 0.5*noise, atol=1e-6)

  def test_batched(self, key):
    keys = random.split(key, 3)
    noise = jax.vmap(lambda k: generate_brownian_noise(k, 20, 0.05))(keys)
    paths = compute_brownian_motion(noise)
    assert paths.shape == (3, 21, 2)
    assert jnp.allclose(paths[:,-1], noise.sum(axis=1), atol=1e-5)

  def test_bad_shape(self):
    with pytest.raises(ValueError):
      compute_brownian_motion(jnp.zeros((5, 3)))
