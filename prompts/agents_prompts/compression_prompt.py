"""History compression prompt (conversation -> <state_snapshot>)."""

# Snapshot sections, in the order the model must emit them
STATE_SNAPSHOT_SECTIONS = (
    "overall_goal",
    "key_knowledge",
    "file_system_state",
    "recent_actions",
    "current_plan",
)

COMPRESSION_PROMPT = """
You are a history compression component. Distill the conversation into a concise XML snapshot. This snapshot is the agent's only memory of the past. Preserve all essential details.

First, think in a private <scratchpad> to identify crucial information.

Then, generate the final <state_snapshot> XML object. Be dense with information.

The structure MUST be as follows:

<state_snapshot>
    <overall_goal>
        <!-- A single, concise sentence describing the user's high-level objective. -->
    </overall_goal>

    <key_knowledge>
        <!-- Crucial facts, conventions, and constraints. Use bullet points. -->
    </key_knowledge>

    <file_system_state>
        <!-- List files that have been created, read, modified, or deleted. Note their status and critical learnings. -->
    </file_system_state>

    <recent_actions>
        <!-- A summary of the last few significant agent actions and their outcomes. -->
    </recent_actions>

    <current_plan>
        <!-- The agent's step-by-step plan. Mark completed steps with [DONE], in-progress with [IN PROGRESS], and to-do with [TODO]. -->
    </current_plan>
</state_snapshot>
""".strip()
