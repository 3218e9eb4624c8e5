from typing import Dict, List


class Interner:
    """Deduplicating string table handing out stable integer ids."""
    def __init__(self):
        self.strings: List[str] = []
        self.ids: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.strings)

    def intern(self, string: str) -> int:
        index = self.ids.get(string)
        if index is None:
            index = len(self.strings)
            self.strings.append(string)
            self.ids[string] = index
        return index

    def get(self, index: int) -> str:
        if not 0 <= index < len(self.strings):
            raise IndexError(f"bug: invalid string id {index}")
        return self.strings[index]
