from typing import cast, Optional


class Deb822Error(RuntimeError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class MalformedLineError(Deb822Error):
    @property
    def line_number(self) -> Optional[int]:
        if len(self.args) > 1:
            return cast("int", self.args[1])
        return None


class SignatureError(Deb822Error):
    pass


class GrammarError(Deb822Error, ValueError):
    pass


class ShapeMismatchError(Deb822Error, TypeError):
    pass


class FieldConversionError(Deb822Error):
    @property
    def field_name(self) -> str:
        return cast("str", self.args[1])


class DecodeExhaustedError(Deb822Error):
    pass
