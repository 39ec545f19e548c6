# zeroplugins

Building blocks for a group-chat bot. Each module holds the logic of one
feature, free of any particular chat framework: the bot decides how messages
arrive and how replies are sent, and these modules do the parsing, scheduling,
storage and scoring.

## Features

- **Reminders** (`zeroplugins.timer`, `zeroplugins.schedule`, `zeroplugins.clock`):
  `filled_timer` reads reminders written in Chinese ("在12月每周的12点0分时提醒大家…")
  into a `Timer` with a packed month/day/week/hour/minute field;
  `filled_cron_timer` makes one from a five-field cron expression.
  `next_wake_time` works out when a date-pattern timer should next be checked and
  `should_fire` whether it matches a moment. `Clock` keeps timers in an SQLite
  file, runs each on a background thread and calls a `send(group_id, segments)`
  callback with `alert_message(timer)` when it fires; `CronSchedule` parses the
  cron expressions (including `@daily`, `@hourly` and the like).
- **Group management** (`zeroplugins.manager`): `mute_minutes` for ban lengths
  (capped at 43199 minutes), `welcome_to_cq` for welcome and farewell templates
  with `{at}`, `{nickname}`, `{avatar}`, `{uid}`, `{gid}` and `{groupname}`,
  `MemberStore` to keep those templates and verified members in SQLite,
  `parse_join_answer`, `gist_url` and `check_new_user` to approve join requests
  against a gist holding a recent unix timestamp, `toggle_flag` for plugin
  switches, and `pick_lucky` for a random roll call among the ten most recently
  active members.
- **Song guessing** (`zeroplugins.guessmusic`): `Config` (a JSON file with
  `musicPath`, `local` and `api`), `music_lottery` to pick a song from the local
  library or an online chart, `cut_music` to cut three ten-second WAV clips with
  ffmpeg, and `GuessGame` to judge answers, hand out hints and end the round.
- **Small utilities**:
  - `zeroplugins.moyu`: `Holiday`, `parse_holiday`, `weekend_message` and
    `daily_message` for the morning countdown to weekends and holidays.
  - `zeroplugins.hyaku`: `load_poems` reads the 100-row Hyakunin Isshu table,
    `image_urls` gives a poem's card images.
  - `zeroplugins.nsfw`: `judge` and `auto_judge` turn classification `Scores`
    into a verdict.
  - `zeroplugins.nativewife`: `WifeGallery`, a per-group picture folder with a
    draw that stays the same for a nickname all day.
  - `zeroplugins.omikuji`: `KujiStore` for fortune-slip texts and `image_urls`
    for the slip pictures.
  - `zeroplugins.nativesetu`: `SetuIndex`, an SQLite index of local picture
    folders keyed by difference hash.
  - `zeroplugins.jandan`: `PictureStore` and `update`, which walks the picture
    feed's pages from the newest until it meets a picture it already has.

`cut_music` needs `ffmpeg` on the `PATH`; everything else is pure Python.

## Examples

Chinese numerals in reminder text:

```python
from zeroplugins.timer import chinese_num_to_int

chinese_num_to_int("十二")   # 12
```

A reminder for every Saturday at 16:30, and its next check time:

```python
from datetime import datetime
from zeroplugins.timer import filled_timer
from zeroplugins.schedule import next_wake_time

timer = filled_timer(["", "每", "周六", "16", "30", "", "下班啦"], 0, 12345, False)
print(next_wake_time(timer, datetime.now()))
```

Keeping reminders in a database:

```python
from zeroplugins.clock import Clock

clock = Clock("timers.db", send=lambda group_id, segments: print(group_id, segments))
clock.register_timer(timer, True)
print(clock.list_timers(12345))
clock.close()
```

Welcome text for a new member and a ban length:

```python
from zeroplugins.manager import mute_minutes, welcome_to_cq

welcome_to_cq("欢迎{at}加入{groupname}!", 10001, "Alice", 12345, "Test Group")
# "欢迎[CQ:at,qq=10001]加入Test Group!"
mute_minutes(2, "小时", False)   # 120
```

## What the package does not do

- It does not connect to any chat service and has no command dispatcher: the
  bot that uses it matches incoming messages and sends the replies.
- It does not fetch holiday dates, the poem table or the fortune-slip texts;
  the caller supplies them (as `Holiday` values, a CSV file and an SQLite file).
- It offers no MIDI composition or ear-training features.

## Testing

The test suite uses pytest, with `responses` for HTTP and `freezegun` for
time; they are listed in the `test` extra:

```
pip install -e ".[test]"
pytest
```