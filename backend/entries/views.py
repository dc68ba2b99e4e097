import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly

from core.responses import paginated, success

from .access import Operation, get_entry_for
from .ledger import current_action
from .models import Action
from .queries import Scope, list_entries
from .serializers import (
    EntrySerializer,
    EntryWriteSerializer,
    ListingParamsSerializer,
    SearchParamsSerializer,
)
from .voting import cast_vote

logger = logging.getLogger(__name__)

VOTE_MESSAGES = {
    (Action.LIKE, True): 'Entry liked successfully',
    (Action.LIKE, False): 'Like removed',
    (Action.DISLIKE, True): 'Entry disliked successfully',
    (Action.DISLIKE, False): 'Dislike removed',
}


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_entry(request):
    serializer = EntryWriteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = serializer.save(user=request.user)
    logger.info('User %s created entry %s', request.user.pk, entry.pk)
    return success(
        EntrySerializer(entry).data,
        message='Entry created successfully',
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_entries(request):
    """
    GET /entries/my?page=1&limit=10&search=&type=&sortBy=createdAt&sortOrder=desc
    """
    params = ListingParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    page = list_entries(params.to_query(Scope.MINE, user_id=request.user.pk))
    return paginated(page, EntrySerializer)


@api_view(['GET'])
def community_entries(request):
    """
    GET /entries/community?page=1&limit=10&search=&type=&sortBy=likes&sortOrder=desc
    """
    params = ListingParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    page = list_entries(params.to_query(Scope.COMMUNITY))
    return paginated(page, EntrySerializer)


@api_view(['GET'])
def search_entries(request):
    """
    GET /entries/search?query=Inception&type=Movie&year=2010&director=&page=1&limit=10
    """
    params = SearchParamsSerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    page = list_entries(params.to_query(Scope.ALL))
    return paginated(page, EntrySerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def entry_detail(request, entry_id):
    if request.method == 'GET':
        entry = get_entry_for(request.user, entry_id, Operation.READ)
        return success(EntrySerializer(entry).data)

    if request.method == 'PUT':
        entry = get_entry_for(request.user, entry_id, Operation.EDIT)
        serializer = EntryWriteSerializer(entry, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        entry = serializer.save()
        return success(EntrySerializer(entry).data, message='Entry updated successfully')

    entry = get_entry_for(request.user, entry_id, Operation.DELETE)
    entry.delete()
    logger.info('User %s deleted entry %s', request.user.pk, entry_id)
    return success(message='Entry deleted successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def release_entry(request, entry_id):
    entry = get_entry_for(request.user, entry_id, Operation.RELEASE)
    entry.is_released = True
    entry.save(update_fields=['is_released', 'updated_at'])
    return success(EntrySerializer(entry).data, message='Entry released to community successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def like_entry(request, entry_id):
    return _vote(request, entry_id, Action.LIKE)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dislike_entry(request, entry_id):
    return _vote(request, entry_id, Action.DISLIKE)


def _vote(request, entry_id, action):
    entry, outcome = cast_vote(request.user.pk, entry_id, action)
    data = EntrySerializer(entry).data
    data['userAction'] = outcome.resulting_action
    return success(data, message=VOTE_MESSAGES[(action, not outcome.removed)])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def entry_interaction(request, entry_id):
    get_entry_for(request.user, entry_id, Operation.VOTE)
    return success({'action': current_action(request.user.pk, entry_id)})
