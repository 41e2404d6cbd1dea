from .users.user import User
from .users.watch_history import WatchHistory

from .videos.video import Video

from .comments.comment import Comment, ModerationStatus

from .likes.like import Like, LikeTarget, LikeTargetKind

from .subscriptions.subscription import Subscription

from .playlists.playlist import Playlist
from .playlists.playlist_video import PlaylistVideo

from .tweets.tweet import Tweet
