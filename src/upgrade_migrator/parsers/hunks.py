"""Replay diff hunks into old/new text blocks."""

from dataclasses import dataclass

NO_NEWLINE_MARKER = "\\ No newline at end of file"


@dataclass(frozen=True)
class HunkBlock:
    """Text a hunk expects before and leaves after it is applied."""
    
    old: str
    new: str
    
    @property
    def is_insertion(self) -> bool:
        """True when the hunk has no baseline text (new file)."""
        return self.old == ""


def split_hunks(content: str) -> list[list[str]]:
    """Split a record's content into hunks, dropping the @@ header lines."""
    hunks: list[list[str]] = []
    current: list[str] | None = None
    
    for line in content.split("\n"):
        if line.startswith("@@"):
            current = []
            hunks.append(current)
        elif current is not None:
            current.append(line)
    
    return hunks


def replay_hunk(lines: list[str]) -> HunkBlock:
    """Rebuild the old and new text of one hunk.
    
    Context lines go to both sides, removed lines only to the old side
    and added lines only to the new side.
    """
    old: list[str] = []
    new: list[str] = []
    
    for line in lines:
        if line == NO_NEWLINE_MARKER:
            continue
        
        marker, text = line[:1], line[1:]
        
        if marker == "-":
            old.append(text)
        elif marker == "+":
            new.append(text)
        elif marker == " ":
            old.append(text)
            new.append(text)
        elif line == "":
            # Some tools strip the space from empty context lines
            old.append("")
            new.append("")
    
    # Trailing blanks come from the line split, not the hunk
    while old and new and old[-1] == "" and new[-1] == "":
        old.pop()
        new.pop()
    
    return HunkBlock(old="\n".join(old), new="\n".join(new))


def replay_content(content: str) -> list[HunkBlock]:
    """Replay every hunk of a record's content."""
    return [
        block for block in (replay_hunk(lines) for lines in split_hunks(content))
        if block.old or block.new
    ]
