"""
Utilities for ``${VAR}`` interpolation of project files.
"""
import re
from typing import Dict, List

# ${VAR}, ${VAR:-default}, ${VAR:+value}, ${VAR:?message}; $$ escapes a dollar
PATTERN = re.compile(r'\$\$|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::([-+?])([^}]*))?\}')


class InterpolationError(KeyError):
    """
    One or more variables were required but not set.
    """
    def __init__(self, missing: List[str]):
        super().__init__(", ".join(missing))
        self.missing = missing

    def __str__(self) -> str:
        return f"undefined variable(s): {', '.join(self.missing)}"


class EnvironmentInterpolator:
    """
    Interpolates environment variables into text before it is decoded.
    """
    @staticmethod
    def interpolate(template: str, context: Dict[str, str]) -> str:
        """
        :param template: Text containing placeholders.
        :param context: Variable values.
        :return: The interpolated text.
        :raises InterpolationError: Listing every plain ``${VAR}`` or
            ``${VAR:?msg}`` that is unset.
        """
        missing: List[str] = []
        reported = set()

        def replace(match):
            if match.group(0) == "$$":
                return "$"
            name, modifier, alt_value = match.group(1), match.group(2), match.group(3)
            value = context.get(name)

            if modifier == "-":
                return value if value else alt_value
            if modifier == "+":
                return alt_value if value else ""
            if value is None or (modifier == "?" and not value):
                if name not in reported:
                    reported.add(name)
                    missing.append(f"{name} ({alt_value})" if modifier == "?" and alt_value else name)
                return ""
            return value

        result = PATTERN.sub(replace, template)
        if missing:
            raise InterpolationError(missing)
        return result
