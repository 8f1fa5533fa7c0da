class DimensionError(Exception):

    def __init__(self, msg: str = 'Incorrect dimensions.') -> None:
        super().__init__(msg)


class UnknownFieldError(Exception):

    def __init__(self, name: str, context: str = '') -> None:

        """Raised when a field name does not match any registered field.

        Parameters
        ----------
        name: str
            Name of the field that could not be found.
        context: str
            Operation that was being performed.
        """

        msg = f'Field {name} not found'
        if context:
            msg += f' trying to {context}'

        super().__init__(msg)
        self.name = name


class BackendError(Exception):

    def __init__(self, msg: str = 'Incompatible compute backend.') -> None:
        super().__init__(msg)
