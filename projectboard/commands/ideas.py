"""
pb idea / ideas / promote - Idea inbox.
"""

from projectboard.commands.context import BoardContext


def cmd_idea(args, ctx: BoardContext) -> int:
    idea = ctx.orchestrator.add_idea(args.content)
    print(f"Created idea #{idea.id}: {idea.content}")
    return 0


def cmd_ideas(args, ctx: BoardContext) -> int:
    ideas = ctx.store.list_ideas(include_promoted=args.all)
    if not ideas:
        print("No ideas. Add one with: pb idea \"...\"")
        return 0
    for idea in ideas:
        suffix = f"  (promoted to task #{idea.promoted_task_id})" if idea.promoted else ""
        print(f"  #{idea.id}: {idea.content}{suffix}")
    return 0


def cmd_promote(args, ctx: BoardContext) -> int:
    idea, task = ctx.orchestrator.promote(args.idea_id)
    print(f"Promoted idea #{idea.id} to task #{task.id}: {task.title}")
    print(f"   Column: {task.column_name}")
    return 0
