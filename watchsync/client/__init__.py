"""
watchsync.client
~~~~~~~~~~~~~~~~
Client-side replica of a shared-viewing session.
"""
from watchsync.client.autoplay import AutoplayController
from watchsync.client.interfaces import NullView, Origin, PlayerState
from watchsync.client.playback import PlaybackSynchronizer
from watchsync.client.queue import QueueReplica
from watchsync.client.roster import ClientRoster
from watchsync.client.session import SyncSession
from watchsync.client.store import PendingQueueStore
