"""Starter config file written by `circlerank init`.

Only the options an operator is likely to touch are written, most of them
commented out at their defaults. Everything else keeps the built-in default.
"""

from pathlib import Path

from circlerank.config.models import CircleRankConfig


def write_user_config(path: Path, config: CircleRankConfig | None = None) -> None:
    """Write config.yaml with helpful comments.

    Args:
        path: Path to write config.yaml
        config: Config values (uses defaults if None)
    """
    cfg = config or CircleRankConfig()
    defaults = CircleRankConfig()

    lines = [
        "# CircleRank Configuration",
        "# Env vars override this file: CIRCLERANK__<SECTION>__<KEY>",
        "",
    ]

    lines.append("logging:")
    lines.append("  # DEBUG, INFO, WARNING, ERROR, CRITICAL")
    lines.append(f"  level: {cfg.logging.level}")
    lines.append("")

    # Write active if non-default, else as comment
    lines.append("ranking:")
    lines.append("  # Consensus strategy: borda, mean_rank, copeland")
    prefix = "" if cfg.ranking.strategy != defaults.ranking.strategy else "# "
    lines.append(f"  {prefix}strategy: {cfg.ranking.strategy}")
    lines.append("")

    lines.append("cache:")
    lines.append("  # Seconds an aggregate may be reused. 0 recomputes on every read.")
    prefix = "" if cfg.cache.max_age_sec != defaults.cache.max_age_sec else "# "
    lines.append(f"  {prefix}max_age_sec: {cfg.cache.max_age_sec}")
    lines.append("")

    lines.append("staleness:")
    lines.append("  # Remind owners of stale rankings after this many hours")
    prefix = "" if cfg.staleness.reminder_after_hours != defaults.staleness.reminder_after_hours else "# "
    lines.append(f"  {prefix}reminder_after_hours: {cfg.staleness.reminder_after_hours}")
    lines.append("  # Tell owners the grace period ended after this many days")
    prefix = "" if cfg.staleness.grace_period_days != defaults.staleness.grace_period_days else "# "
    lines.append(f"  {prefix}grace_period_days: {cfg.staleness.grace_period_days}")
    lines.append("")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines))
