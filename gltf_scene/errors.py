"""Exceptions raised while converting a glTF document."""


class GLTFConversionError(RuntimeError):
    pass


class OutOfRangeRead(GLTFConversionError):
    """An accessor or bufferView addresses bytes past the end of its buffer."""


class ResourceUnavailable(GLTFConversionError):
    """A buffer or image payload could not be loaded or decoded."""


class UnsupportedAccessorLayout(GLTFConversionError):
    """The accessor uses a component/structural type the decoder does not read."""


class ChannelDataCountMismatch(GLTFConversionError):
    def __init__(self, expected, actual, detail=""):
        self.expected = expected
        self.actual = actual
        message = f"data count mismatch: expected {expected} values, got {actual}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UnresolvedReference(GLTFConversionError):
    def __init__(self, kind, index, count, detail=""):
        self.kind = kind
        self.index = index
        self.count = count
        message = f"{kind} index {index} is out of range (document has {count})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CyclicNodeGraph(UnresolvedReference):
    def __init__(self, index, path):
        self.path = list(path)
        chain = " -> ".join(str(i) for i in self.path + [index])
        GLTFConversionError.__init__(self, f"node {index} is its own ancestor ({chain})")
        self.kind = "node"
        self.index = index
        self.count = None
