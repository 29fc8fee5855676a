"""Text patch strategies for applying replayed diff hunks."""

import logging
from abc import ABC, abstractmethod

from upgrade_migrator.exceptions import ContentMismatchError
from upgrade_migrator.parsers.hunks import HunkBlock

logger = logging.getLogger(__name__)


class PatchStrategy(ABC):
    """Applies replayed hunks to the current text of a file."""
    
    @abstractmethod
    def patch(self, current: str, blocks: list[HunkBlock], file_path: str) -> str:
        """Apply hunks to a modified file's text.
        
        Args:
            current: Text currently on disk
            blocks: Replayed hunks of the file
            file_path: Path used in error messages
            
        Returns:
            Patched text
            
        Raises:
            ContentMismatchError: If the text has diverged from the
                baseline the hunks expect
        """
        pass
    
    @staticmethod
    def new_file_text(blocks: list[HunkBlock]) -> str:
        """Full text of a file the diff adds."""
        text = "\n".join(block.new for block in blocks)
        return text if text.endswith("\n") else text + "\n"
    
    @staticmethod
    def deleted_file_matches(current: str, blocks: list[HunkBlock]) -> bool:
        """Check if on-disk text is what the diff deletes."""
        expected = "\n".join(block.old for block in blocks)
        return current.rstrip("\n") == expected.rstrip("\n")


class LiteralReplacePatch(PatchStrategy):
    """Replaces each hunk's old block verbatim with its new block.
    
    This is a deliberate simplification: there is no fuzz or offset
    handling, so any local edit inside a hunk's span makes it fail.
    A hunk whose new block is already present counts as applied, so
    running the same patch twice is a no-op. A deletion with context on
    one side counts as applied only when that context sits at the file
    boundary it was cut from.
    """
    
    def patch(self, current: str, blocks: list[HunkBlock], file_path: str) -> str:
        result = current
        
        for index, block in enumerate(blocks, start=1):
            if self._already_applied(result, block):
                logger.debug(f"{file_path}: hunk {index} already applied")
                continue
            
            if block.is_insertion:
                if result.strip():
                    raise ContentMismatchError(
                        file_path,
                        f"Hunk {index} has no context to anchor on in {file_path}",
                    )
                result = block.new
                continue
            
            if block.old not in result:
                raise ContentMismatchError(
                    file_path,
                    f"Expected content of hunk {index} not found in {file_path}; "
                    f"the file differs from the release baseline",
                )
            
            result = result.replace(block.old, block.new, 1)
        
        return result
    
    @staticmethod
    def _already_applied(text: str, block: HunkBlock) -> bool:
        if not block.new or block.new not in text:
            return False
        # An addition keeps its old block inside the new one
        if block.old in text and block.old not in block.new:
            return False
        
        old_lines = block.old.split("\n")
        new_lines = block.new.split("\n")
        if len(new_lines) < len(old_lines):
            # A deletion with context on one side only touches a file boundary
            if old_lines[-len(new_lines):] == new_lines:
                return (text + "\n").startswith(block.new + "\n")
            if old_lines[:len(new_lines)] == new_lines:
                return ("\n" + text.rstrip("\n")).endswith("\n" + block.new)
        return True
