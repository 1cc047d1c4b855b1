"""
Interactive confirmation.
"""
from typing import Callable, Optional

# (headline, detail) -> answer
Confirmer = Callable[[str, str], bool]


def console_confirm(headline: str, detail: str, input_func: Optional[Callable[[str], str]] = None) -> bool:
    """
    Ask a yes/no question on the console; anything but y/yes is a no.

    End of input counts as no.
    """
    read = input_func or input
    print(headline)
    try:
        answer = read(f"{detail} [y|N]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")
