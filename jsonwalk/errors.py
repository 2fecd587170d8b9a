class JsonWalkError(Exception):
    pass


class JsonWalkArgumentError(JsonWalkError, ValueError):
    pass


class JsonWalkParseError(JsonWalkError):
    def __init__(self, path: str, token: str | None, message: str):
        super().__init__(f"{message} (path='{path}', token='{token}')")
        self.path = path
        self.token = token
        self.message = message


class JsonWalkResolutionError(JsonWalkError):
    def __init__(self, path: str, token: str | None, message: str):
        super().__init__(f"{message} (path='{path}', token='{token}')")
        self.path = path
        self.token = token
        self.message = message


class JsonWalkMutationError(JsonWalkError, TypeError):
    pass


class JsonWalkConversionError(JsonWalkError, TypeError):
    def __init__(self, value: object, target: object, message: str):
        super().__init__(f"{message} (value={value!r}, target={target!r})")
        self.value = value
        self.target = target
        self.message = message
