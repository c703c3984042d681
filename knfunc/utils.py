from __future__ import annotations

import json
from typing import List


def split_names(names: str, separator: str = ",") -> List[str]:
    """
    Splits a separator delimited list of names.

    Surrounding whitespace is trimmed and blank entries are dropped. The order
    of the remaining names is kept.

    Args:
        names (str): The delimited names, e.g. "A, ,B".
        separator (str, optional): The delimiter. Defaults to ",".

    Returns:
        List[str]: The names, e.g. ["A", "B"].
    """
    result = []
    for name in names.split(separator):
        name = name.strip()
        if name:
            result.append(name)
    return result


def write_termination_message(url: str, path: str) -> None:
    """
    Writes the deploy result to the container termination message file.

    The message is a compact JSON object, e.g. {"url":"http://foo.bar"}.

    Args:
        url (str): The URL the function is served on.
        path (str): The file to write to.
    """
    data = json.dumps({"url": url}, separators=(",", ":"))
    with open(path, "w") as file:
        file.write(data)
