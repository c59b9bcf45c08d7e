"""Session logging utilities."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from graphitegit.conversation import ToolInvocation, Turn


def _safe_name(text: str, limit: int = 80) -> str:
    return "".join(c if c.isalnum() or c in "-." else "_" for c in text[:limit])


class SessionLogger:
    """Handles logging for a graphite-git session."""

    def __init__(self, home_dir: Path, run_id: Optional[str] = None):
        """Initialize session logger.

        Args:
            home_dir: State directory (runs are kept under ``runs/``)
            run_id: Optional run ID (generated if not provided)
        """
        self.home_dir = home_dir
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")

        # Create logs directory
        self.log_dir = home_dir / "runs" / self.run_id
        self.log_dir.mkdir(parents=True, exist_ok=True)

        # Log files
        self.transcript_path = self.log_dir / "transcript.ndjson"
        self.diffs_dir = self.log_dir / "diffs"
        self.exec_dir = self.log_dir / "exec"

        self.diffs_dir.mkdir(exist_ok=True)
        self.exec_dir.mkdir(exist_ok=True)

    def log_turn(self, turn: Turn) -> None:
        """Append a conversation turn to the transcript.

        Args:
            turn: Any conversation turn
        """
        entry = {
            "ts": datetime.now().isoformat(),
            "id": turn.id,
            **turn.to_dict(),
        }

        with open(self.transcript_path, "a") as f:
            f.write(json.dumps(entry) + "\n")

    def save_diff(self, filename: str, diff_content: str) -> None:
        """Save a diff to disk.

        Args:
            filename: Name for the diff file
            diff_content: Diff content
        """
        timestamp = datetime.now().strftime("%H%M%S_%f")
        diff_path = self.diffs_dir / f"{timestamp}_{_safe_name(filename)}.diff"
        with open(diff_path, "w") as f:
            f.write(diff_content)

    def save_tool_result(self, invocation: ToolInvocation) -> None:
        """Save a tool execution record.

        Args:
            invocation: The invocation, after it reached a terminal status
        """
        timestamp = datetime.now().strftime("%H%M%S_%f")
        exec_path = self.exec_dir / f"{timestamp}_{_safe_name(invocation.name)}.json"
        with open(exec_path, "w") as f:
            json.dump(
                {
                    "timestamp": datetime.now().isoformat(),
                    **invocation.to_dict(),
                },
                f,
                indent=2,
            )

    def read_transcript(self) -> list[dict]:
        """Load the transcript written so far."""
        if not self.transcript_path.exists():
            return []
        with open(self.transcript_path) as f:
            return [json.loads(line) for line in f if line.strip()]

    def get_log_path(self) -> str:
        """Get the path to the log directory.

        Returns:
            Absolute path to log directory
        """
        return str(self.log_dir.absolute())
