import ml_collections

from pssim.utils.enums import eBackend, eInitial, eIntegrator


def get_common_config() -> ml_collections.ConfigDict:

    config = ml_collections.ConfigDict()

    config.backend = eBackend.numpy
    config.seed = 42

    config.dt = 1e-2
    config.n_steps = 1000
    config.write_every_n_steps = 100

    config.grid = ml_collections.ConfigDict()
    config.grid.sx = 64
    config.grid.sy = 64
    config.grid.sz = 1
    config.grid.dx = 1.0
    config.grid.dy = 1.0
    config.grid.dz = 1.0

    config.parameters = ml_collections.ConfigDict()
    config.fields = []
    config.terms = []

    return config


def get_diffusion_config() -> ml_collections.ConfigDict:

    """Noisy diffusion -- d/dt phi = D nabla^2 phi + A eta"""

    config = get_common_config()

    config.parameters.D = 1.0
    config.parameters.A = 0.1

    config.fields = [
        {
            'name': 'phi',
            'dynamic': True,
            'integrator': eIntegrator.euler,
            'implicit': [{'coefficient': -config.parameters.D, 'q2n': 1}],
            'noise': {'coefficient': config.parameters.A},
            'initial': {'kind': eInitial.constant, 'value': 0.0},
        },
    ]

    return config


def get_model_a_config() -> ml_collections.ConfigDict:

    """Model A -- d/dt phi = -(a phi + b phi^3 - k nabla^2 phi) + noise"""

    config = get_common_config()

    config.parameters.a = -1.0
    config.parameters.b = 1.0
    config.parameters.k = 1.0
    config.parameters.noise = 0.05

    p = config.parameters

    config.fields = [
        {
            'name': 'phi',
            'dynamic': True,
            'integrator': eIntegrator.rk2,
            'implicit': [{'coefficient': -p.a}, {'coefficient': -p.k, 'q2n': 1}],
            'noise': {'coefficient': p.noise},
            'initial': {'kind': eInitial.random, 'mean': 0.0, 'std': 0.1},
        },
    ]

    config.terms = [
        {'field': 'phi', 'prefactors': [{'coefficient': -p.b}], 'product': ['phi', 'phi', 'phi']},
    ]

    return config


def get_model_b_config() -> ml_collections.ConfigDict:

    """Model B with an explicit chemical potential.

    mu = a phi + b phi^3 - k nabla^2 phi    (static)
    d/dt phi = nabla^2 mu + noise            (dynamic)
    """

    config = get_common_config()

    config.dt = 5e-3

    config.parameters.a = -1.0
    config.parameters.b = 1.0
    config.parameters.k = 1.0
    config.parameters.noise = 0.01

    p = config.parameters

    config.fields = [
        {
            'name': 'mu',
            'dynamic': False,
            'output': False,
        },
        {
            'name': 'phi',
            'dynamic': True,
            'integrator': eIntegrator.euler,
            'noise': {'coefficient': p.noise, 'iqx': 1},
            'initial': {'kind': eInitial.random, 'mean': 0.0, 'std': 0.1},
        },
    ]

    config.terms = [
        {'field': 'mu', 'prefactors': [{'coefficient': p.a}, {'coefficient': p.k, 'q2n': 1}], 'product': ['phi']},
        {'field': 'mu', 'prefactors': [{'coefficient': p.b}], 'product': ['phi', 'phi', 'phi']},
        {'field': 'phi', 'prefactors': [{'coefficient': -1.0, 'q2n': 1}], 'product': ['mu']},
    ]

    return config


def get_config(model: str) -> ml_collections.ConfigDict:

    get_model_config = globals().get(f'get_{model}_config')
    if get_model_config is None:
        raise ValueError(f'Invalid model: {model}')

    return get_model_config()
