from rest_framework import serializers


class UserSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source='first_name', read_only=True)
    email = serializers.EmailField(read_only=True)


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(
        min_length=2, max_length=50,
        error_messages={
            'min_length': 'Name must be at least 2 characters',
            'max_length': 'Name must be less than 50 characters',
        },
    )
    email = serializers.EmailField(error_messages={'invalid': 'Invalid email address'})
    password = serializers.CharField(
        min_length=6, max_length=100, trim_whitespace=False, write_only=True,
        error_messages={
            'min_length': 'Password must be at least 6 characters',
            'max_length': 'Password must be less than 100 characters',
        },
    )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={'invalid': 'Invalid email address'})
    password = serializers.CharField(
        trim_whitespace=False, write_only=True,
        error_messages={'blank': 'Password is required'},
    )
