import asyncio
import logging
from fastapi import FastAPI, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.errors import NotFoundError, UnauthorizedError, ValidationError, register_error_handlers
from shared.log import configure_logging
from shared.validation import Rule, validated, required, parse_id
from .db import Base, engine, get_db
from .models import Post, Like, Comment
from .schemas import PostCreate, CommentCreate, PostOut, LikeOut, CommentOut
from .auth import get_current_user_id
from .directory import UserDirectory, UserSnapshot, get_user_directory


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Posts Service")
register_error_handlers(app)


TEXT_RULES = [
    Rule("text", required, "Text is required"),
]


@app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)


def get_post_or_404(db: Session, post_id: str) -> Post:
    # Malformed ids are reported the same way as missing posts
    pk = parse_id(post_id)
    post = db.get(Post, pk) if pk is not None else None
    if not post:
        raise NotFoundError("Post not found")
    return post


def _likes_out(post: Post) -> list[LikeOut]:
    return [LikeOut.model_validate(like) for like in post.likes]


def _comments_out(post: Post) -> list[CommentOut]:
    return [CommentOut.model_validate(comment) for comment in post.comments]


def _save_post(db: Session, user_id: int, author: UserSnapshot, text: str) -> PostOut:
    post = Post(user_id=user_id, text=text, name=author.name, avatar=author.avatar)
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("User %s created post %s", user_id, post.post_id)
    return PostOut.model_validate(post)


def _save_comment(db: Session, post: Post, user_id: int, author: UserSnapshot, text: str) -> list[CommentOut]:
    db.add(Comment(post_id=post.post_id, user_id=user_id, text=text, name=author.name, avatar=author.avatar))
    db.commit()
    return _comments_out(post)


@app.get("/posts", response_model=list[PostOut])
def list_posts(current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    posts = db.execute(
        select(Post)
        .options(selectinload(Post.likes), selectinload(Post.comments))
        .order_by(Post.created_at.desc(), Post.post_id.desc())
    ).scalars().all()
    return [PostOut.model_validate(post) for post in posts]


@app.get("/posts/{post_id}", response_model=PostOut)
def get_post(post_id: str, current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return PostOut.model_validate(get_post_or_404(db, post_id))


@app.post("/posts", response_model=PostOut)
async def create_post(
    current_user_id: int = Depends(get_current_user_id),
    data: PostCreate = Depends(validated(PostCreate, TEXT_RULES)),
    db: Session = Depends(get_db),
    directory: UserDirectory = Depends(get_user_directory),
):
    author = await directory.get_user(current_user_id)
    return await run_in_threadpool(_save_post, db, current_user_id, author, data.text)


@app.delete("/posts/{post_id}", response_model=PostOut)
def delete_post(post_id: str, current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    post = get_post_or_404(db, post_id)
    if post.user_id != current_user_id:
        raise UnauthorizedError("User not authorized")
    removed = PostOut.model_validate(post)
    db.delete(post)
    db.commit()
    logger.info("User %s deleted post %s", current_user_id, removed.post_id)
    return removed


@app.put("/posts/like/{post_id}", response_model=list[LikeOut])
def like_post(post_id: str, current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    post = get_post_or_404(db, post_id)
    if any(like.user_id == current_user_id for like in post.likes):
        raise ValidationError("Post already liked")
    db.add(Like(post_id=post.post_id, user_id=current_user_id))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent like from the same user
        db.rollback()
        raise ValidationError("Post already liked")
    return _likes_out(post)


@app.put("/posts/unlike/{post_id}", response_model=list[LikeOut])
def unlike_post(post_id: str, current_user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    post = get_post_or_404(db, post_id)
    like = next((like for like in post.likes if like.user_id == current_user_id), None)
    if like is None:
        raise ValidationError("Post has not yet been liked")
    post.likes.remove(like)
    db.commit()
    return _likes_out(post)


@app.post("/posts/comment/{post_id}", response_model=list[CommentOut])
async def add_comment(
    post_id: str,
    current_user_id: int = Depends(get_current_user_id),
    data: CommentCreate = Depends(validated(CommentCreate, TEXT_RULES)),
    db: Session = Depends(get_db),
    directory: UserDirectory = Depends(get_user_directory),
):
    # Both lookups must finish before the comment is written
    author, post = await asyncio.gather(
        directory.get_user(current_user_id),
        run_in_threadpool(get_post_or_404, db, post_id),
    )
    return await run_in_threadpool(_save_comment, db, post, current_user_id, author, data.text)


@app.delete("/posts/comment/{post_id}/{comment_id}", response_model=list[CommentOut])
def delete_comment(
    post_id: str,
    comment_id: str,
    current_user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    post = get_post_or_404(db, post_id)
    target = parse_id(comment_id)
    comment = next((c for c in post.comments if c.comment_id == target), None)
    if comment is None:
        raise NotFoundError("Comment does not exist")
    if comment.user_id != current_user_id:
        raise UnauthorizedError("User not authorized")
    post.comments.remove(comment)
    db.commit()
    return _comments_out(post)
