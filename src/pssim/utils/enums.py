import enum


class eIntegrator(enum.Enum):
    euler = 'euler'
    rk2 = 'rk2'
    rk4 = 'rk4'


class eBackend(enum.Enum):
    numpy = 'numpy'
    torch = 'torch'


class eInitial(enum.Enum):
    constant = 'constant'
    random = 'random'
