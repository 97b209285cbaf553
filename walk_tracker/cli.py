"""Command-line interface for walk_tracker.

Run:
    python -m walk_tracker set-home --lat 31.2222 --lon 121.4588
    python -m walk_tracker replay --csv Path.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from time import time

from walk_tracker.csv_io import load_position_samples
from walk_tracker.engine import WalkCompleted, WalkStarted
from walk_tracker.errors import WalkTrackerError
from walk_tracker.history import filter_walks, sum_walks, write_walks_csv
from walk_tracker.models import (
    DEFAULT_END_CONFIRMATION_COUNT,
    DEFAULT_START_CONFIRMATION_COUNT,
    DEFAULT_TZ,
    DEFAULT_ZONE_RADIUS_M,
    Coordinate,
    NotificationSettings,
    Walk,
)
from walk_tracker.store import WalkStore
from walk_tracker.timeutils import dt_from_epoch_ms, format_duration, parse_dt, time_since
from walk_tracker.tracker import WalkTracker


def _tracker(args: argparse.Namespace) -> WalkTracker:
    return WalkTracker(
        WalkStore(args.store),
        start_confirmation_count=getattr(args, "start_count", DEFAULT_START_CONFIRMATION_COUNT),
        end_confirmation_count=getattr(args, "end_count", DEFAULT_END_CONFIRMATION_COUNT),
    )


def _walk_line(walk: Walk, tz_name: str) -> str:
    start = dt_from_epoch_ms(walk.start_time, tz_name).strftime("%Y-%m-%d %H:%M")
    end = dt_from_epoch_ms(walk.end_time, tz_name).strftime("%H:%M") if walk.end_time is not None else "进行中"
    zones = "、".join(sorted(walk.zones_visited)) or "-"
    return (
        f"{walk.id}  {start} - {end}  {format_duration(walk.duration_seconds, 'long')}  "
        f"{walk.distance_km:.2f} km  经过：{zones}"
    )


def _cmd_set_home(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    zone = tracker.set_home(Coordinate(args.lat, args.lon))
    print(f"已设置 Home：({zone.center.latitude}, {zone.center.longitude}) 半径 {zone.radius_km * 1000:.0f}m")
    return 0


def _cmd_add_zone(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    zone = tracker.add_zone(args.name, Coordinate(args.lat, args.lon), radius_m=args.radius_m, color=args.color)
    print(f"已添加区域：{zone.name}（id={zone.id}，半径 {zone.radius_km * 1000:.0f}m，颜色 {zone.color}）")
    return 0


def _cmd_delete_zone(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    if not tracker.delete_zone(args.id):
        print(f"找不到区域：{args.id!r}", file=sys.stderr)
        return 1
    print(f"已删除区域：{args.id}")
    return 0


def _cmd_zones(args: argparse.Namespace) -> int:
    data = WalkStore(args.store).data
    if data.home_zone is None:
        print("Home：未设置")
    else:
        c = data.home_zone.center
        print(f"Home：({c.latitude}, {c.longitude}) 半径 {data.home_zone.radius_km * 1000:.0f}m")
    if not data.custom_zones:
        print("（还没有命名区域）")
    for z in data.custom_zones:
        print(
            f"{z.id}  {z.name}  ({z.center.latitude}, {z.center.longitude})  "
            f"半径 {z.radius_km * 1000:.0f}m  {z.color}"
        )
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    if args.home_lat is not None and args.home_lon is not None:
        tracker.set_home(Coordinate(args.home_lat, args.home_lon))
    if tracker.store.data.home_zone is None:
        print("尚未设置 Home：请先运行 set-home，或传入 --home-lat/--home-lon", file=sys.stderr)
        return 1

    samples, summary = load_position_samples(args.csv)
    print(f"读取样本：parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")

    completed: list[Walk] = []
    for sample in samples:
        event = tracker.handle_sample(sample)
        if isinstance(event, WalkStarted):
            start = dt_from_epoch_ms(event.start_time, args.tz).isoformat(sep=" ")
            print(f"[开始] {start} @ ({event.start_position.latitude:.6f}, {event.start_position.longitude:.6f})")
        elif isinstance(event, WalkCompleted):
            completed.append(event.walk)
            print(f"[结束] {_walk_line(event.walk, args.tz)}")

    if tracker.current_walk is not None:
        walk = tracker.current_walk
        print(f"注意：轨迹结束时仍在遛狗（{walk.id}，已走 {walk.distance_km:.2f} km），未保存")

    total = sum_walks(completed)
    print(f"识别到 walks={total.walks} 次，合计={total.total_hhmmss}，{total.total_distance_km:.2f} km")
    if args.out:
        write_walks_csv(completed, args.out, args.tz)
        print(f"已导出：{args.out}")
    return 0


def _cmd_history(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    start_ms = int(parse_dt(args.range_start, args.tz).timestamp() * 1000) if args.range_start else None
    end_ms = int(parse_dt(args.range_end, args.tz).timestamp() * 1000) if args.range_end else None
    walks = filter_walks(tracker.store.data.walks, start_ms, end_ms)

    if not walks:
        print("还没有遛狗记录。")
    for walk in sorted(walks, key=lambda w: w.start_time, reverse=True):
        print(_walk_line(walk, args.tz))

    total = sum_walks(walks)
    print(f"walks={total.walks}, total={total.total_hhmmss}, distance={total.total_distance_km:.2f} km")

    last = tracker.last_walk()
    if last is not None and last.end_time is not None:
        value, unit = time_since(last.end_time, int(time() * 1000))
        print(f"距离上次遛狗：{value} {unit}")
    if args.out:
        write_walks_csv(walks, args.out, args.tz)
        print(f"已导出：{args.out}")
    return 0


def _cmd_delete_walk(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    if not tracker.delete_walk(args.id):
        print(f"找不到遛狗记录：{args.id!r}", file=sys.stderr)
        return 1
    print(f"已删除遛狗记录：{args.id}")
    return 0


def _cmd_settings(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    current = tracker.store.data.settings
    enabled = current.enabled if args.reminders is None else args.reminders == "on"
    hours = current.hours if args.hours is None else args.hours
    if hours <= 0:
        raise ValueError(f"提醒间隔必须大于 0 小时，当前为 {hours}")
    settings = NotificationSettings(enabled=enabled, hours=hours)
    if settings != current:
        tracker.update_settings(settings)
    print(f"遛狗提醒：{'开启' if settings.enabled else '关闭'}，间隔 {settings.hours:g} 小时")
    return 0


def _cmd_remind(args: argparse.Namespace) -> int:
    tracker = _tracker(args)
    now_ms = int(parse_dt(args.now, args.tz).timestamp() * 1000) if args.now else None
    reminder = tracker.due_reminder(now_ms)
    if reminder is None:
        print("暂无提醒。")
    else:
        print(reminder.message)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--store", type=str, default="walk_data.json", help="数据文件路径（JSON）")
    common.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA），默认 UTC")

    p = argparse.ArgumentParser(prog="walk_tracker")
    p.add_argument("--log-level", type=str, default="WARNING", help="日志级别（DEBUG/INFO/WARNING/ERROR）")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_home = sub.add_parser("set-home", parents=[common], help="把指定坐标设为 Home 围栏（半径50m）")
    p_home.add_argument("--lat", type=float, required=True, help="纬度")
    p_home.add_argument("--lon", type=float, required=True, help="经度")
    p_home.set_defaults(func=_cmd_set_home)

    p_az = sub.add_parser("add-zone", parents=[common], help="添加命名区域（如公园入口）")
    p_az.add_argument("--name", type=str, required=True, help="区域名称")
    p_az.add_argument("--lat", type=float, required=True, help="中心纬度")
    p_az.add_argument("--lon", type=float, required=True, help="中心经度")
    p_az.add_argument("--radius-m", type=float, default=DEFAULT_ZONE_RADIUS_M, help="半径（米），默认100")
    p_az.add_argument("--color", type=str, default=None, help="显示颜色，例如 #60A5FA（默认轮换）")
    p_az.set_defaults(func=_cmd_add_zone)

    p_dz = sub.add_parser("delete-zone", parents=[common], help="删除命名区域")
    p_dz.add_argument("--id", type=str, required=True, help="区域 id（见 zones 命令）")
    p_dz.set_defaults(func=_cmd_delete_zone)

    p_z = sub.add_parser("zones", parents=[common], help="列出 Home 与命名区域")
    p_z.set_defaults(func=_cmd_zones)

    p_rp = sub.add_parser("replay", parents=[common], help="用轨迹CSV回放遛狗检测，并保存识别到的遛狗记录")
    p_rp.add_argument("--csv", type=str, default="Path.csv", help="输入CSV路径（geoTime/latitude/longitude）")
    p_rp.add_argument("--home-lat", type=float, default=None, help="临时设置 Home 纬度（会写入数据文件）")
    p_rp.add_argument("--home-lon", type=float, default=None, help="临时设置 Home 经度（会写入数据文件）")
    p_rp.add_argument(
        "--start-count",
        type=int,
        default=DEFAULT_START_CONFIRMATION_COUNT,
        help="开始确认：连续在 Home 外的样本数（防GPS抖动），默认3",
    )
    p_rp.add_argument(
        "--end-count",
        type=int,
        default=DEFAULT_END_CONFIRMATION_COUNT,
        help="结束确认：连续回到 Home 内的样本数，默认2",
    )
    p_rp.add_argument("--out", type=str, default=None, help="额外导出本次识别的 walks.csv")
    p_rp.set_defaults(func=_cmd_replay)

    p_h = sub.add_parser("history", parents=[common], help="查看遛狗历史与合计")
    p_h.add_argument("--range-start", type=str, default=None, help="只看该时间之后开始的遛狗")
    p_h.add_argument("--range-end", type=str, default=None, help="只看该时间之前开始的遛狗")
    p_h.add_argument("--out", type=str, default=None, help="导出 walks.csv 路径")
    p_h.set_defaults(func=_cmd_history)

    p_dw = sub.add_parser("delete-walk", parents=[common], help="删除一条遛狗记录")
    p_dw.add_argument("--id", type=str, required=True, help="遛狗记录 id（见 history 命令）")
    p_dw.set_defaults(func=_cmd_delete_walk)

    p_s = sub.add_parser("settings", parents=[common], help="查看/修改遛狗提醒设置")
    p_s.add_argument("--reminders", type=str, choices=["on", "off"], default=None, help="开启/关闭提醒")
    p_s.add_argument("--hours", type=float, default=None, help="距离上次遛狗多少小时后提醒")
    p_s.set_defaults(func=_cmd_settings)

    p_r = sub.add_parser("remind", parents=[common], help="检查现在是否该提醒遛狗")
    p_r.add_argument("--now", type=str, default=None, help="以该时间为“现在”（测试用），默认当前时间")
    p_r.set_defaults(func=_cmd_remind)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd == "replay" and (args.home_lat is None) != (args.home_lon is None):
        parser.error("replay: --home-lat 与 --home-lon 必须同时提供")
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except (WalkTrackerError, ValueError) as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
