from django.conf import settings
from rest_framework import serializers

from .models import Entry, EntryType
from .queries import SORT_FIELDS, SORT_ORDERS, ListingQuery

TYPE_FILTER_CHOICES = EntryType.values + ['all']


class OwnerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source='first_name', read_only=True)


class EntrySerializer(serializers.ModelSerializer):
    yearTime = serializers.CharField(source='year_time')
    imageUrl = serializers.URLField(source='image_url', allow_null=True, required=False)
    isReleased = serializers.BooleanField(source='is_released')
    userId = serializers.IntegerField(source='user_id', read_only=True)
    user = OwnerSerializer(read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Entry
        fields = [
            'id', 'title', 'type', 'director', 'budget', 'location', 'duration',
            'yearTime', 'imageUrl', 'isReleased', 'likes', 'dislikes',
            'userId', 'user', 'createdAt', 'updatedAt',
        ]
        read_only_fields = ['id', 'likes', 'dislikes']


class EntryWriteSerializer(serializers.ModelSerializer):
    """Create/update payload. Counters and ownership are never writable."""
    title = serializers.CharField(max_length=200, error_messages={'blank': 'Title is required'})
    type = serializers.ChoiceField(
        choices=EntryType.choices,
        error_messages={'invalid_choice': 'Type must be either Movie or TV'},
    )
    director = serializers.CharField(max_length=100, error_messages={'blank': 'Director is required'})
    budget = serializers.CharField(max_length=100, error_messages={'blank': 'Budget is required'})
    location = serializers.CharField(max_length=100, error_messages={'blank': 'Location is required'})
    duration = serializers.CharField(max_length=100, error_messages={'blank': 'Duration is required'})
    yearTime = serializers.CharField(
        source='year_time', max_length=50, error_messages={'blank': 'Year/Time is required'},
    )
    imageUrl = serializers.URLField(
        source='image_url', max_length=500, required=False, allow_null=True,
        error_messages={'invalid': 'Invalid image URL'},
    )
    isReleased = serializers.BooleanField(source='is_released', required=False)

    class Meta:
        model = Entry
        fields = [
            'title', 'type', 'director', 'budget', 'location', 'duration',
            'yearTime', 'imageUrl', 'isReleased',
        ]

    def validate(self, attrs):
        # isReleased is only accepted on update; creation always starts private
        if self.instance is None:
            attrs.pop('is_released', None)
        return attrs


class PageParamsSerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, required=False)

    def validate_limit(self, value):
        maximum = settings.ENTRIES_MAX_PAGE_SIZE
        if value > maximum:
            raise serializers.ValidationError(f'Ensure this value is less than or equal to {maximum}.')
        return value

    def page_kwargs(self):
        data = self.validated_data
        return {
            'page': data['page'],
            'limit': data.get('limit') or settings.ENTRIES_PAGE_SIZE,
        }


def _type_filter(value):
    return None if value in ('', 'all', None) else value


class ListingParamsSerializer(PageParamsSerializer):
    """Query string of the "my" and community listings."""
    search = serializers.CharField(required=False, allow_blank=True, max_length=200)
    type = serializers.ChoiceField(choices=TYPE_FILTER_CHOICES, required=False, allow_blank=True)
    sortBy = serializers.ChoiceField(choices=list(SORT_FIELDS), required=False)
    sortOrder = serializers.ChoiceField(choices=SORT_ORDERS, required=False)

    def to_query(self, scope, user_id=None):
        data = self.validated_data
        return ListingQuery(
            scope=scope,
            user_id=user_id,
            search=data.get('search', '').strip(),
            type=_type_filter(data.get('type')),
            sort_by=data.get('sortBy'),
            sort_order=data.get('sortOrder'),
            **self.page_kwargs(),
        )


class SearchParamsSerializer(PageParamsSerializer):
    query = serializers.CharField(required=False, allow_blank=True, max_length=200)
    type = serializers.ChoiceField(choices=TYPE_FILTER_CHOICES, required=False, allow_blank=True)
    year = serializers.CharField(required=False, allow_blank=True, max_length=50)
    director = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def to_query(self, scope):
        data = self.validated_data
        return ListingQuery(
            scope=scope,
            query=data.get('query', '').strip(),
            type=_type_filter(data.get('type')),
            year=data.get('year', '').strip(),
            director=data.get('director', '').strip(),
            **self.page_kwargs(),
        )
